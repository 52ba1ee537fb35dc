from __future__ import annotations

from typing import Dict, List, Optional
import logging

import numpy as np

from .core import ProcessRecord, InvalidInputError

logger = logging.getLogger(__name__)


class Action:
    """Priority tiers the advisor can recommend."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


ACTIONS = [Action.HIGH, Action.MEDIUM, Action.LOW]

LEARNING_RATE = 0.1
DISCOUNT_FACTOR = 0.9
EPSILON = 0.1


def state_key(process: ProcessRecord) -> str:
    """Discretize a process into priority, burst band (width 2) and memory band (width 20)."""
    return f"{process.priority}_{int(process.burst_time // 2)}_{int(process.memory_required // 20)}"


class ReinforcementAdvisor:
    """Epsilon-greedy Q-learning over discretized process states.

    Maps a process to a priority tier and learns from waiting/turnaround
    rewards. The Q-table grows as new states are seen and never shrinks.
    """

    def __init__(
        self,
        learning_rate: float = LEARNING_RATE,
        discount_factor: float = DISCOUNT_FACTOR,
        epsilon: float = EPSILON,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        if not 0.0 <= epsilon <= 1.0:
            raise InvalidInputError(f"epsilon must be within [0, 1], got {epsilon}")
        self.learning_rate = learning_rate
        self.discount_factor = discount_factor
        self.epsilon = epsilon
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.q_table: Dict[str, Dict[str, float]] = {}

    def _ensure_state(self, key: str) -> Dict[str, float]:
        if key not in self.q_table:
            self.q_table[key] = {a: 0.0 for a in ACTIONS}
        return self.q_table[key]

    def q_value(self, process: ProcessRecord, action: str) -> float:
        return self.q_table.get(state_key(process), {}).get(action, 0.0)

    def best_action(self, process: ProcessRecord) -> str:
        actions = self._ensure_state(state_key(process))
        best_value = max(actions.values())
        tied: List[str] = [a for a in ACTIONS if actions[a] == best_value]
        if len(tied) == 1:
            return tied[0]
        return Action.MEDIUM if Action.MEDIUM in tied else tied[0]

    def select_action(self, process: ProcessRecord) -> str:
        if self.rng.random() < self.epsilon:
            # explore
            return ACTIONS[int(self.rng.integers(0, len(ACTIONS)))]
        return self.best_action(process)

    def update_q_value(
        self,
        process: ProcessRecord,
        action: str,
        reward: float,
        next_process: Optional[ProcessRecord] = None,
    ) -> float:
        """One-step Q-learning update; returns the new value."""
        if action not in ACTIONS:
            raise InvalidInputError(f"unknown action {action!r}; expected one of {', '.join(ACTIONS)}")

        actions = self._ensure_state(state_key(process))
        current_q = actions[action]

        max_next_q = 0.0
        if next_process is not None:
            next_actions = self.q_table.get(state_key(next_process))
            if next_actions:
                max_next_q = max(next_actions.values())

        new_q = current_q + self.learning_rate * (reward + self.discount_factor * max_next_q - current_q)
        actions[action] = new_q
        logger.debug("Q[%s][%s]: %.3f -> %.3f (reward %.2f)", state_key(process), action, current_q, new_q, reward)
        return new_q

    @staticmethod
    def calculate_reward(waiting_time: float, turnaround_time: float) -> float:
        return 100 - waiting_time * 2 - turnaround_time * 0.5
