from __future__ import annotations

from typing import List, Dict, Optional, Sequence, Any
import math

import pandas as pd

from .core import ProcessRecord, ExecutionInterval, SchedulingResult, InvalidInputError


REQUIRED_COLUMNS = ["id", "arrival_time", "burst_time"]
OPTIONAL_COLUMNS: Dict[str, Any] = {
    "priority": 1,
    "memory_required": 0,
    "io_operations": 0,
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_avg(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def compute_makespan(processes: Sequence[ProcessRecord]) -> float:
    return max(p.completion_time for p in processes)


def compute_cpu_utilization(processes: Sequence[ProcessRecord], makespan: float) -> float:
    if makespan <= 0:
        return 0.0
    total_burst = sum(p.burst_time for p in processes)
    return (total_burst / makespan) * 100


def compute_throughput(processes: Sequence[ProcessRecord], makespan: float) -> float:
    if makespan <= 0:
        return 0.0
    return len(processes) / makespan


class MetricsCalculator:
    """Derives aggregate statistics for a completed schedule."""

    @staticmethod
    def calculate(
        policy: str,
        processes: Sequence[ProcessRecord],
        intervals: Sequence[ExecutionInterval],
        quantum: Optional[int] = None,
    ) -> SchedulingResult:
        if not processes:
            raise InvalidInputError("cannot compute metrics for an empty process set")

        makespan = compute_makespan(processes)
        if makespan <= 0:
            raise InvalidInputError(f"schedule for {policy} has non-positive makespan {makespan}")

        return SchedulingResult(
            policy=policy,
            processes=tuple(p.copy() for p in processes),
            intervals=tuple(intervals),
            avg_waiting_time=compute_avg([p.waiting_time for p in processes]),
            avg_turnaround_time=compute_avg([p.turnaround_time for p in processes]),
            cpu_utilization=compute_cpu_utilization(processes, makespan),
            throughput=compute_throughput(processes, makespan),
            quantum=quantum,
            makespan=makespan,
        )


def _native_number(value: Any) -> float:
    """Return an int for integral values so integer workloads stay integral."""
    number = float(value)
    return int(number) if number.is_integer() else number


def load_processes(path: str) -> List[ProcessRecord]:
    """Read process records from a CSV file.

    The file needs `id`, `arrival_time` and `burst_time` columns. `name`,
    `priority`, `memory_required` and `io_operations` are optional.
    Unreadable files and malformed rows raise InvalidInputError.
    """
    try:
        df = pd.read_csv(path)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise InvalidInputError(f"{path}: cannot read workload: {e}") from e

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise InvalidInputError(f"{path}: missing columns {', '.join(missing)}")
    blank = [c for c in REQUIRED_COLUMNS if df[c].isna().any()]
    if blank:
        raise InvalidInputError(f"{path}: empty values in {', '.join(blank)}")

    for column, default in OPTIONAL_COLUMNS.items():
        if column not in df.columns:
            df[column] = default
        else:
            df[column] = df[column].fillna(default)

    procs: List[ProcessRecord] = []
    for row_no, row in enumerate(df.to_dict(orient="records"), start=1):
        name = row.get("name")
        try:
            procs.append(ProcessRecord(
                id=int(row["id"]),
                name="" if name is None or pd.isna(name) else str(name),
                arrival_time=_native_number(row["arrival_time"]),
                burst_time=_native_number(row["burst_time"]),
                priority=int(row["priority"]),
                memory_required=_native_number(row["memory_required"]),
                io_operations=int(row["io_operations"]),
            ))
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"{path}: row {row_no}: {e}") from e
    return procs


def result_to_frame(result: SchedulingResult) -> pd.DataFrame:
    """Tabulate per-process timings of a schedule, one row per process."""
    columns = [
        "id", "name", "arrival_time", "burst_time", "priority",
        "start_time", "completion_time", "waiting_time", "turnaround_time",
    ]
    rows = [{c: getattr(p, c) for c in columns} for p in result.processes]
    df = pd.DataFrame(rows, columns=columns)
    df.insert(0, "policy", result.policy)
    return df


def export_result_csv(result: SchedulingResult, path: str) -> None:
    result_to_frame(result).to_csv(path, index=False)
