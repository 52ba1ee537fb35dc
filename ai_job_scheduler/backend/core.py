"""
Core data structures for the AI job scheduler.
Includes ProcessRecord, ExecutionInterval, SchedulingResult and error types.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, Optional, Tuple


class SchedulerError(Exception):
    """Base class for scheduler failures."""


class InvalidInputError(SchedulerError, ValueError):
    """Raised when a workload or parameter cannot be scheduled."""


class DegenerateStateError(SchedulerError, RuntimeError):
    """Raised when a scheduling loop can no longer make progress."""


@dataclass
class ProcessRecord:
    """A process as seen by every scheduling policy.

    Static inputs are supplied by the caller. The derived fields start at 0
    and are only written by the engine on its own working copies.
    """
    id: int
    arrival_time: float
    burst_time: float
    priority: int = 1
    memory_required: float = 0
    io_operations: int = 0
    name: str = ""
    remaining_time: float = 0
    waiting_time: float = 0
    turnaround_time: float = 0
    completion_time: float = 0
    start_time: float = 0

    def __post_init__(self) -> None:
        if not self.name:
            self.name = f"P{self.id}"

    def copy(self) -> "ProcessRecord":
        return ProcessRecord(**asdict(self))


@dataclass(frozen=True)
class ExecutionInterval:
    """One contiguous slice of CPU time given to a process."""
    process_id: int
    start_time: float
    end_time: float

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class SchedulingResult:
    """Snapshot of a finished schedule.

    The snapshot is shallow: the tuples are fixed, but the ProcessRecords in
    them are ordinary dataclasses. They are copies owned by this result, so
    editing one never reaches the engine or any other result.
    """
    policy: str
    processes: Tuple[ProcessRecord, ...]
    intervals: Tuple[ExecutionInterval, ...]
    avg_waiting_time: float
    avg_turnaround_time: float
    cpu_utilization: float
    throughput: float
    quantum: Optional[int] = None
    makespan: float = 0

    def get_process(self, process_id: int) -> ProcessRecord:
        for p in self.processes:
            if p.id == process_id:
                return p
        raise KeyError(process_id)

    def intervals_for(self, process_id: int) -> Tuple[ExecutionInterval, ...]:
        return tuple(iv for iv in self.intervals if iv.process_id == process_id)

    def metrics(self) -> Dict[str, float]:
        return {
            "avg_waiting_time": self.avg_waiting_time,
            "avg_turnaround_time": self.avg_turnaround_time,
            "cpu_utilization": self.cpu_utilization,
            "throughput": self.throughput,
        }
