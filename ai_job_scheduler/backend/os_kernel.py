from __future__ import annotations

from typing import List, Optional, Sequence
from dataclasses import dataclass
import logging

import numpy as np
import pandas as pd

from .core import ProcessRecord, SchedulingResult, InvalidInputError
from .schedulers import SchedulerEngine, Scheduler, ALL_POLICIES, DEFAULT_QUANTUM
from .ml_model import BurstTimePredictor, NUM_TREES, MAX_DEPTH, RETRAIN_INTERVAL, SYNTHETIC_SAMPLES
from .adaptive_controller import ReinforcementAdvisor, LEARNING_RATE, DISCOUNT_FACTOR, EPSILON

logger = logging.getLogger(__name__)


@dataclass
class KernelConfig:
    time_quantum: int = DEFAULT_QUANTUM
    num_trees: int = NUM_TREES
    max_depth: int = MAX_DEPTH
    synthetic_samples: int = SYNTHETIC_SAMPLES
    retrain_interval: int = RETRAIN_INTERVAL
    learning_rate: float = LEARNING_RATE
    discount_factor: float = DISCOUNT_FACTOR
    epsilon: float = EPSILON
    seed: Optional[int] = None


class OSKernel:
    """Front end that ties the scheduling engine to the burst predictor and advisor.

    One kernel keeps a single predictor and advisor across runs, so feedback
    recorded after one schedule shapes predictions for the next.
    """

    def __init__(self, config: KernelConfig | None = None):
        self.config = config or KernelConfig()
        seeds = np.random.SeedSequence(self.config.seed)
        predictor_seed, advisor_seed = seeds.spawn(2)
        self.predictor = BurstTimePredictor(
            num_trees=self.config.num_trees,
            max_depth=self.config.max_depth,
            retrain_interval=self.config.retrain_interval,
            synthetic_samples=self.config.synthetic_samples,
            rng=np.random.default_rng(predictor_seed),
        )
        self.advisor = ReinforcementAdvisor(
            learning_rate=self.config.learning_rate,
            discount_factor=self.config.discount_factor,
            epsilon=self.config.epsilon,
            rng=np.random.default_rng(advisor_seed),
        )

    def run(self, processes: Sequence[ProcessRecord], policy: str = Scheduler.FCFS) -> SchedulingResult:
        engine = SchedulerEngine(processes)
        predicted = None
        if policy == Scheduler.AI:
            predicted = self.predictor.predict_burst_times(processes)
            logger.debug("Predicted burst times: %s", predicted)
        return engine.run(policy, quantum=self.config.time_quantum, predicted_burst_times=predicted)

    def compare(self, processes: Sequence[ProcessRecord]) -> pd.DataFrame:
        """Run every policy on the same workload; one row of metrics per policy."""
        rows = []
        for policy in ALL_POLICIES:
            result = self.run(processes, policy)
            rows.append(dict(policy=policy, **result.metrics()))
        return pd.DataFrame(rows).set_index("policy")

    def record_feedback(
        self,
        result: SchedulingResult,
        actual_processes: Optional[Sequence[ProcessRecord]] = None,
    ) -> List[float]:
        """Feed a finished schedule back into the predictor and the advisor.

        Actual burst times come from `actual_processes`, matched by id. When
        omitted they are read from the result itself, which is only allowed for
        policies that schedule on the real burst times. Returns the reward of
        each process in completion order.
        """
        if actual_processes is None:
            if result.policy == Scheduler.AI:
                raise InvalidInputError(
                    f"{Scheduler.AI} results hold predicted burst times; pass the actual process records"
                )
            actual_processes = result.processes
        actual_by_id = {p.id: p for p in actual_processes}
        missing = [p.id for p in result.processes if p.id not in actual_by_id]
        if missing:
            raise InvalidInputError(f"no actual record for process(es) {missing}")

        for p in result.processes:
            actual = actual_by_id[p.id]
            self.predictor.add_training_data(actual, actual.burst_time)

        finished = sorted(result.processes, key=lambda p: p.completion_time)
        rewards: List[float] = []
        for i, p in enumerate(finished):
            next_p = finished[i + 1] if i + 1 < len(finished) else None
            action = self.advisor.select_action(p)
            reward = self.advisor.calculate_reward(p.waiting_time, p.turnaround_time)
            self.advisor.update_q_value(p, action, reward, next_p)
            rewards.append(reward)
        logger.info("Recorded feedback for %d processes from %s", len(finished), result.policy)
        return rewards
