from __future__ import annotations

import pytest

from ai_job_scheduler.backend.core import ProcessRecord, InvalidInputError
from ai_job_scheduler.backend.os_kernel import OSKernel, KernelConfig
from ai_job_scheduler.backend.schedulers import Scheduler, ALL_POLICIES


@pytest.fixture
def procs():
    return [
        ProcessRecord(id=1, arrival_time=0, burst_time=5, priority=2, memory_required=30, io_operations=1),
        ProcessRecord(id=2, arrival_time=1, burst_time=3, priority=1, memory_required=70, io_operations=3),
        ProcessRecord(id=3, arrival_time=2, burst_time=8, priority=4, memory_required=20, io_operations=0),
    ]


def test_kernel_runs_simple(procs):
    """Test the kernel runs a simple workload."""
    kernel = OSKernel(KernelConfig(time_quantum=1, seed=0))
    result = kernel.run(procs, Scheduler.RR)

    assert result.quantum == 1
    assert all(p.completion_time > 0 for p in result.processes)
    assert result.makespan >= sum(p.burst_time for p in procs)


def test_ai_run_uses_predictor(procs):
    """Test the AI policy runs on predicted bursts."""
    kernel = OSKernel(KernelConfig(seed=1))
    result = kernel.run(procs, Scheduler.AI)

    predicted = kernel.predictor.predict_burst_times(procs)
    assert [p.burst_time for p in result.processes] == predicted


def test_seeded_kernels_agree(procs):
    """Test equal seeds give equal AI schedules."""
    a = OSKernel(KernelConfig(seed=42)).run(procs, Scheduler.AI)
    b = OSKernel(KernelConfig(seed=42)).run(procs, Scheduler.AI)
    assert a == b


def test_compare_all_policies(procs):
    """Test comparing every policy on one workload."""
    df = OSKernel(KernelConfig(seed=3)).compare(procs)

    assert list(df.index) == ALL_POLICIES
    assert list(df.columns) == ["avg_waiting_time", "avg_turnaround_time", "cpu_utilization", "throughput"]
    assert df.loc[Scheduler.FCFS, "avg_waiting_time"] == pytest.approx(10 / 3)
    assert (df["cpu_utilization"] <= 100).all()


def test_compare_empty_workload():
    """Test comparing an empty workload is rejected."""
    with pytest.raises(InvalidInputError):
        OSKernel(KernelConfig(seed=3)).compare([])


def test_record_feedback(procs):
    """Test feedback trains the predictor and the advisor."""
    kernel = OSKernel(KernelConfig(seed=5))
    result = kernel.run(procs, Scheduler.FCFS)
    before = len(kernel.predictor.training_data)

    rewards = kernel.record_feedback(result)

    assert len(kernel.predictor.training_data) == before + len(procs)
    assert kernel.advisor.q_table
    finished = sorted(result.processes, key=lambda p: p.completion_time)
    assert rewards == [kernel.advisor.calculate_reward(p.waiting_time, p.turnaround_time) for p in finished]


def test_feedback_uses_actual_bursts(procs):
    """Test feedback learns actual rather than predicted bursts."""
    kernel = OSKernel(KernelConfig(seed=6))
    result = kernel.run(procs, Scheduler.AI)
    kernel.record_feedback(result, actual_processes=procs)

    labels = [s.label for s in kernel.predictor.training_data[-len(procs):]]
    assert labels == [float(p.burst_time) for p in procs]


def test_ai_feedback_needs_actual_records(procs):
    """Test AI feedback without actual records is rejected."""
    kernel = OSKernel(KernelConfig(seed=7))
    result = kernel.run(procs, Scheduler.AI)
    before = len(kernel.predictor.training_data)

    with pytest.raises(InvalidInputError):
        kernel.record_feedback(result)

    assert len(kernel.predictor.training_data) == before
    assert not kernel.advisor.q_table


def test_feedback_rejects_missing_actuals(procs):
    """Test feedback with missing actual records is rejected."""
    kernel = OSKernel(KernelConfig(seed=7))
    result = kernel.run(procs, Scheduler.AI)
    before = len(kernel.predictor.training_data)

    with pytest.raises(InvalidInputError):
        kernel.record_feedback(result, actual_processes=procs[:2])

    assert len(kernel.predictor.training_data) == before
