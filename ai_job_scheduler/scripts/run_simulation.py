from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

# Ensure repository root is on sys.path when running as a script
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(SCRIPT_DIR, os.pardir, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from ai_job_scheduler.backend.core import SchedulerError
from ai_job_scheduler.backend.schedulers import Scheduler, ALL_POLICIES, DEFAULT_QUANTUM
from ai_job_scheduler.backend.os_kernel import OSKernel, KernelConfig
from ai_job_scheduler.backend.utils import load_processes, export_result_csv


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="CPU scheduling simulator with ML burst prediction")
    p.add_argument("--csv", required=True, help="Workload CSV (id, arrival_time, burst_time, ...)")
    p.add_argument("--policy", choices=ALL_POLICIES + ["all"], default="all")
    p.add_argument("--quantum", type=int, default=DEFAULT_QUANTUM)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--out", type=str, default=None,
                   help="Write per-process timings (one policy) or the comparison table (all) to this CSV")
    p.add_argument("--verbose", action="store_true")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    kernel = OSKernel(KernelConfig(time_quantum=args.quantum, seed=args.seed))
    try:
        procs = load_processes(args.csv)
        if args.policy == "all":
            table = kernel.compare(procs)
            print(table.round(3).to_string())
            if args.out:
                table.to_csv(args.out)
                print(f"Saved comparison to {args.out}")
            return 0

        result = kernel.run(procs, args.policy)
        print(f"{result.policy}: avg waiting {result.avg_waiting_time:.3f}, avg turnaround {result.avg_turnaround_time:.3f}, "
              f"CPU {result.cpu_utilization:.1f}%, throughput {result.throughput:.3f}")
        for iv in result.intervals:
            print(f"  P{iv.process_id}: {iv.start_time} -> {iv.end_time}")
        if args.policy == Scheduler.AI:
            print(kernel.predictor.prediction_frame(procs).to_string(index=False))
        if args.out:
            export_result_csv(result, args.out)
            print(f"Saved per-process timings to {args.out}")
    except (SchedulerError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
