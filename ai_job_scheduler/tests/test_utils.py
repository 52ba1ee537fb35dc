from __future__ import annotations

import pandas as pd
import pytest

from ai_job_scheduler.backend.core import ProcessRecord, ExecutionInterval, InvalidInputError
from ai_job_scheduler.backend.schedulers import SchedulerEngine
from ai_job_scheduler.backend.utils import (
    MetricsCalculator,
    compute_avg,
    export_result_csv,
    load_processes,
    result_to_frame,
    round_half_up,
)


def test_round_half_up():
    """Test half-up rounding."""
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2
    assert round_half_up(0.49) == 0


def test_compute_avg_empty():
    """Test the average of nothing is zero."""
    assert compute_avg([]) == 0.0


class TestMetricsCalculator:
    """Test metric derivation."""

    def test_single_process_at_zero(self):
        """Test metrics of a single process."""
        p = ProcessRecord(id=1, arrival_time=0, burst_time=4, completion_time=4, turnaround_time=4)
        result = MetricsCalculator.calculate("FCFS", [p], [ExecutionInterval(1, 0, 4)])

        assert result.cpu_utilization == 100
        assert result.throughput == pytest.approx(0.25)
        assert result.avg_waiting_time == 0
        assert result.avg_turnaround_time == 4

    def test_empty_rejected(self):
        """Test metrics of an empty schedule are rejected."""
        with pytest.raises(InvalidInputError):
            MetricsCalculator.calculate("FCFS", [], [])

    def test_unfinished_schedule_rejected(self):
        """Test metrics of an unfinished schedule are rejected."""
        p = ProcessRecord(id=1, arrival_time=0, burst_time=4)
        with pytest.raises(InvalidInputError):
            MetricsCalculator.calculate("FCFS", [p], [])


class TestWorkloadIO:
    """Test workload loading and result export."""

    def test_load_with_defaults(self, tmp_path):
        """Test loading fills optional columns."""
        path = tmp_path / "workload.csv"
        path.write_text("id,arrival_time,burst_time\n1,0,5\n2,1.5,3\n")

        procs = load_processes(str(path))

        assert [p.name for p in procs] == ["P1", "P2"]
        assert procs[0].arrival_time == 0 and isinstance(procs[0].arrival_time, int)
        assert procs[1].arrival_time == 1.5
        assert procs[1].priority == 1
        assert procs[1].memory_required == 0

    def test_load_full_columns(self, tmp_path):
        """Test loading every column."""
        path = tmp_path / "workload.csv"
        path.write_text(
            "id,name,arrival_time,burst_time,priority,memory_required,io_operations\n"
            "1,init,0,5,2,64,1\n"
            "2,,1,3,,32,0\n"
        )

        procs = load_processes(str(path))

        assert procs[0].name == "init"
        assert procs[0].memory_required == 64
        assert procs[0].io_operations == 1
        assert procs[1].name == "P2"
        assert procs[1].priority == 1

    def test_missing_column(self, tmp_path):
        """Test a missing required column is rejected."""
        path = tmp_path / "bad.csv"
        path.write_text("id,arrival_time\n1,0\n")
        with pytest.raises(InvalidInputError):
            load_processes(str(path))

    def test_result_frame_and_export(self, tmp_path):
        """Test result tabulation and CSV export."""
        procs = [
            ProcessRecord(id=1, arrival_time=0, burst_time=5),
            ProcessRecord(id=2, arrival_time=1, burst_time=3),
        ]
        result = SchedulerEngine(procs).fcfs()

        df = result_to_frame(result)
        assert list(df["policy"]) == ["FCFS", "FCFS"]
        assert list(df["completion_time"]) == [5, 8]

        out = tmp_path / "out.csv"
        export_result_csv(result, str(out))
        assert list(pd.read_csv(out)["waiting_time"]) == [0, 4]

    def test_missing_file(self, tmp_path):
        """Test a missing workload file is rejected."""
        with pytest.raises(InvalidInputError):
            load_processes(str(tmp_path / "nope.csv"))

    def test_empty_file(self, tmp_path):
        """Test an empty workload file is rejected."""
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(InvalidInputError):
            load_processes(str(path))

    def test_blank_required_value(self, tmp_path):
        """Test a blank required value is rejected."""
        path = tmp_path / "blank.csv"
        path.write_text("id,arrival_time,burst_time\n1,0,\n")
        with pytest.raises(InvalidInputError):
            load_processes(str(path))

    def test_non_numeric_value(self, tmp_path):
        """Test a non-numeric value is rejected with its row."""
        path = tmp_path / "text.csv"
        path.write_text("id,arrival_time,burst_time\n1,0,abc\n")
        with pytest.raises(InvalidInputError, match="row 1"):
            load_processes(str(path))
