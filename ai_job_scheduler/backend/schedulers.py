"""
Scheduling policies: FCFS, SJF, Round Robin, Priority and the AI hybrid.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Deque, List, Optional, Sequence, Set
import logging
import math
import numbers

from .core import ProcessRecord, ExecutionInterval, SchedulingResult, InvalidInputError, DegenerateStateError
from .utils import MetricsCalculator, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_QUANTUM = 2

# priority, burst, memory, io
SCORE_WEIGHTS = (0.4, 0.3, 0.2, 0.1)


class Scheduler:
    """Scheduler type constants."""
    FCFS = "FCFS"
    SJF = "SJF"           # non-preemptive
    RR = "RR"             # preemptive, fixed quantum
    PRIORITY = "PRIORITY" # non-preemptive (lower number = higher priority)
    AI = "AI"             # predicted burst + composite score


ALL_POLICIES = [Scheduler.FCFS, Scheduler.SJF, Scheduler.RR, Scheduler.PRIORITY, Scheduler.AI]


def hybrid_score(p: ProcessRecord) -> float:
    """Composite ranking key for the AI policy. Lower dispatches first."""
    w_prio, w_burst, w_mem, w_io = SCORE_WEIGHTS
    return (w_prio * p.priority + w_burst * p.burst_time
            + w_mem * p.memory_required + w_io * p.io_operations)


def validate_processes(processes: Sequence[ProcessRecord]) -> None:
    if not processes:
        raise InvalidInputError("process set is empty")
    for p in processes:
        if not math.isfinite(p.arrival_time) or p.arrival_time < 0:
            raise InvalidInputError(f"process {p.id}: arrival_time must be a finite value >= 0, got {p.arrival_time}")
        if not math.isfinite(p.burst_time) or p.burst_time <= 0:
            raise InvalidInputError(f"process {p.id}: burst_time must be positive, got {p.burst_time}")


def validate_quantum(quantum) -> None:
    if isinstance(quantum, bool) or not isinstance(quantum, numbers.Integral) or quantum < 1:
        raise InvalidInputError(f"quantum must be an integer >= 1, got {quantum!r}")


class SchedulerEngine:
    """Runs scheduling policies over a fixed set of process records.

    The engine keeps its own copy of the records. Every policy call works on
    a fresh copy of that and returns a new SchedulingResult, so calls are
    repeatable and never touch the caller's objects.
    """

    def __init__(self, processes: Sequence[ProcessRecord]):
        self._processes: List[ProcessRecord] = [p.copy() for p in processes]

    @property
    def processes(self) -> List[ProcessRecord]:
        return [p.copy() for p in self._processes]

    def _working_copy(self) -> List[ProcessRecord]:
        validate_processes(self._processes)
        procs = [p.copy() for p in self._processes]
        for p in procs:
            p.remaining_time = 0
            p.waiting_time = 0
            p.turnaround_time = 0
            p.completion_time = 0
            p.start_time = 0
        return procs

    @staticmethod
    def _next_arrival(pending: Sequence[ProcessRecord], clock: float) -> float:
        future = [p.arrival_time for p in pending if p.arrival_time > clock]
        if not future:
            raise DegenerateStateError(
                f"{len(pending)} process(es) incomplete at t={clock} but none can become ready"
            )
        return min(future)

    @staticmethod
    def _execute(p: ProcessRecord, clock: float, intervals: List[ExecutionInterval]) -> float:
        """Run a process to completion from `clock`; return the new clock."""
        p.start_time = clock
        p.waiting_time = clock - p.arrival_time
        clock += p.burst_time
        p.completion_time = clock
        p.turnaround_time = p.completion_time - p.arrival_time
        intervals.append(ExecutionInterval(p.id, p.start_time, p.completion_time))
        return clock

    def _run_non_preemptive(
        self,
        policy: str,
        procs: List[ProcessRecord],
        key: Callable[[ProcessRecord], float],
    ) -> SchedulingResult:
        """Dispatch the ready process with the smallest key until all complete.

        Ties go to the earliest process in input order, since min() keeps the
        first minimal element of the ready list.
        """
        pending = list(procs)
        intervals: List[ExecutionInterval] = []
        clock: float = 0
        max_iterations = 2 * len(procs) + 1
        iterations = 0

        while pending:
            iterations += 1
            if iterations > max_iterations:
                raise DegenerateStateError(f"{policy} made no progress after {max_iterations} iterations")

            ready = [p for p in pending if p.arrival_time <= clock]
            if not ready:
                clock = self._next_arrival(pending, clock)
                logger.debug("%s: CPU idle, clock advanced to %s", policy, clock)
                continue

            chosen = min(ready, key=key)
            pending = [p for p in pending if p is not chosen]
            logger.debug("%s: dispatch %s at t=%s", policy, chosen.name, clock)
            clock = self._execute(chosen, clock, intervals)

        logger.info("%s: scheduled %d processes, makespan %s", policy, len(procs), clock)
        return MetricsCalculator.calculate(policy, procs, intervals)

    def fcfs(self) -> SchedulingResult:
        """First Come First Served."""
        procs = sorted(self._working_copy(), key=lambda p: p.arrival_time)
        intervals: List[ExecutionInterval] = []
        clock: float = 0
        for p in procs:
            if clock < p.arrival_time:
                clock = p.arrival_time
            clock = self._execute(p, clock, intervals)
        logger.info("%s: scheduled %d processes, makespan %s", Scheduler.FCFS, len(procs), clock)
        return MetricsCalculator.calculate(Scheduler.FCFS, procs, intervals)

    def sjf(self) -> SchedulingResult:
        """Shortest Job First (non-preemptive)."""
        return self._run_non_preemptive(Scheduler.SJF, self._working_copy(), key=lambda p: p.burst_time)

    def priority_scheduling(self) -> SchedulingResult:
        """Priority scheduling (non-preemptive)."""
        return self._run_non_preemptive(Scheduler.PRIORITY, self._working_copy(), key=lambda p: p.priority)

    def round_robin(self, quantum: int = DEFAULT_QUANTUM) -> SchedulingResult:
        """Round Robin with a fixed time quantum."""
        validate_quantum(quantum)
        procs = self._working_copy()
        for p in procs:
            p.remaining_time = p.burst_time

        intervals: List[ExecutionInterval] = []
        queue: Deque[int] = deque()
        queued: Set[int] = set()
        clock: float = 0
        completed = 0
        max_iterations = sum(math.ceil(p.burst_time / quantum) for p in procs) + len(procs) + 1
        iterations = 0

        def admit(exclude: Optional[int] = None) -> None:
            for i, p in enumerate(procs):
                if i == exclude or i in queued:
                    continue
                if p.arrival_time <= clock and p.remaining_time > 0:
                    queue.append(i)
                    queued.add(i)

        admit()
        while completed < len(procs):
            iterations += 1
            if iterations > max_iterations:
                raise DegenerateStateError(f"{Scheduler.RR} made no progress after {max_iterations} iterations")

            if not queue:
                clock = self._next_arrival([p for p in procs if p.remaining_time > 0], clock)
                logger.debug("%s: CPU idle, clock advanced to %s", Scheduler.RR, clock)
                admit()
                continue

            idx = queue.popleft()
            queued.discard(idx)
            current = procs[idx]
            if current.remaining_time == current.burst_time:
                current.start_time = clock

            run_for = min(quantum, current.remaining_time)
            intervals.append(ExecutionInterval(current.id, clock, clock + run_for))
            current.remaining_time -= run_for
            clock += run_for

            # arrivals during the slice queue up ahead of the preempted process
            admit(exclude=idx)

            if current.remaining_time > 0:
                queue.append(idx)
                queued.add(idx)
            else:
                current.completion_time = clock
                current.turnaround_time = current.completion_time - current.arrival_time
                current.waiting_time = current.turnaround_time - current.burst_time
                completed += 1
                logger.debug("%s: %s completed at t=%s", Scheduler.RR, current.name, clock)

        logger.info("%s: scheduled %d processes with quantum %d, makespan %s", Scheduler.RR, len(procs), quantum, clock)
        return MetricsCalculator.calculate(Scheduler.RR, procs, intervals, quantum=quantum)

    def ai_scheduling(self, predicted_burst_times: Sequence[float]) -> SchedulingResult:
        """Priority-style scheduling on predicted burst times and a composite score."""
        procs = self._working_copy()
        predicted = list(predicted_burst_times)
        if len(predicted) != len(procs):
            raise InvalidInputError(
                f"expected {len(procs)} predicted burst times, got {len(predicted)}"
            )
        for p, value in zip(procs, predicted):
            try:
                value = float(value)
            except (TypeError, ValueError) as e:
                raise InvalidInputError(f"process {p.id}: predicted burst time {value!r} is not a number") from e
            if not math.isfinite(value):
                raise InvalidInputError(f"process {p.id}: predicted burst time must be finite, got {value}")
            burst = round_half_up(value)
            if burst < 1:
                raise InvalidInputError(f"process {p.id}: predicted burst time {value} rounds below 1")
            p.burst_time = burst
        return self._run_non_preemptive(Scheduler.AI, procs, key=hybrid_score)

    def run(
        self,
        policy: str,
        quantum: int = DEFAULT_QUANTUM,
        predicted_burst_times: Optional[Sequence[float]] = None,
    ) -> SchedulingResult:
        """Run a policy selected by name."""
        if policy == Scheduler.FCFS:
            return self.fcfs()
        if policy == Scheduler.SJF:
            return self.sjf()
        if policy == Scheduler.RR:
            return self.round_robin(quantum)
        if policy == Scheduler.PRIORITY:
            return self.priority_scheduling()
        if policy == Scheduler.AI:
            if predicted_burst_times is None:
                raise InvalidInputError(f"{Scheduler.AI} policy needs predicted burst times")
            return self.ai_scheduling(predicted_burst_times)
        raise InvalidInputError(f"unknown policy {policy!r}; expected one of {', '.join(ALL_POLICIES)}")
