"""
Batch runner

Runs one simulation per (parameter set, seed) pair, either sequentially or in a
multiprocessing pool. Every run builds its own engine from its own seed, so the
results do not depend on how the work is scheduled.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from multiprocessing import Pool, cpu_count
from typing import Callable, Dict, List, Optional, Tuple

from ..sim.core.config import SimulationConfig, set_config_value, validate_config
from ..sim.core.engine import SimulationEngine
from ..sim.core.rng import Seed
from ..sim.types.snapshot import BatchSnapshot, snapshot_from_state
from .sweep import BatchConfig, generate_parameter_configs, time_samples, validate_batch_config

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, Dict[str, float]], None]
_SAMPLE_TOLERANCE = 1e-9


class RunStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"


class BatchStatus(str, Enum):
    COMPLETED = "completed"
    CANCELED = "canceled"


@dataclass(frozen=True)
class RunTask:
    run_index: int
    config: SimulationConfig
    seed: Seed
    overrides: Dict[str, float]
    samples: Tuple[float, ...]


@dataclass
class RunResult:
    run_index: int
    seed: Seed
    overrides: Dict[str, float]
    status: RunStatus
    snapshots: Tuple[BatchSnapshot, ...] = ()
    error: Optional[str] = None


@dataclass
class BatchResult:
    status: BatchStatus
    runs: List[RunResult] = field(default_factory=list)

    @property
    def total_runs(self) -> int:
        return len(self.runs)

    @property
    def snapshots(self) -> List[BatchSnapshot]:
        collected = [snapshot for run in self.runs if run.status == RunStatus.COMPLETED for snapshot in run.snapshots]
        return sorted(collected, key=lambda snapshot: (snapshot.run_index, snapshot.time))

    def _count(self, status: RunStatus) -> int:
        return sum(1 for run in self.runs if run.status == status)

    @property
    def completed_runs(self) -> int:
        return self._count(RunStatus.COMPLETED)

    @property
    def failed_runs(self) -> int:
        return self._count(RunStatus.FAILED)

    @property
    def canceled_runs(self) -> int:
        return self._count(RunStatus.CANCELED)


def derive_run_seed(base_seed: Seed, offset: int) -> Seed:
    if isinstance(base_seed, int) and not isinstance(base_seed, bool):
        return base_seed + offset
    return f"{base_seed}_{offset}"


def build_tasks(base_config: SimulationConfig, batch: BatchConfig) -> List[RunTask]:
    parameter_sets = generate_parameter_configs(
        batch.parameters,
        mode=batch.mode,
        count=batch.random_samples,
        seed=batch.sampling_seed,
    )
    samples = tuple(time_samples(batch.time_samples))
    tasks: List[RunTask] = []
    for overrides in parameter_sets:
        for offset in range(batch.seeds_per_config):
            tasks.append(
                RunTask(
                    run_index=len(tasks),
                    config=base_config,
                    seed=derive_run_seed(base_config.seed, offset),
                    overrides=overrides,
                    samples=samples,
                )
            )
    return tasks


def _sample_run(engine: SimulationEngine, task: RunTask) -> List[BatchSnapshot]:
    snapshots: List[BatchSnapshot] = []
    samples = task.samples
    pending = 0

    def record(sample_time: float) -> None:
        snapshots.append(snapshot_from_state(engine.state, task.run_index, task.seed, task.overrides, sample_time))

    if samples and samples[0] <= 0:
        record(samples[0])
        pending = 1
    while pending < len(samples) and not engine.is_complete():
        engine.step()
        engine.check_finite()
        while pending < len(samples) and engine.time >= samples[pending] - _SAMPLE_TOLERANCE:
            record(samples[pending])
            pending += 1
    return snapshots


def execute_run(task: RunTask) -> RunResult:
    """
    Worker function running a single simulation.

    Failures are reported in the result so one bad run never aborts the batch.
    """
    try:
        config = task.config.copy()
        config.seed = task.seed
        for path, value in task.overrides.items():
            set_config_value(config, path, value)
        validate_config(config)
        engine = SimulationEngine(config, snapshot_interval=0)
        snapshots = _sample_run(engine, task)
    except Exception as e:
        logger.error(f"Error executing run {task.run_index} (seed {task.seed!r}): {e}")
        return RunResult(task.run_index, task.seed, dict(task.overrides), RunStatus.FAILED, error=str(e))
    return RunResult(task.run_index, task.seed, dict(task.overrides), RunStatus.COMPLETED, tuple(snapshots))


def run_batch(
    base_config: SimulationConfig,
    batch: BatchConfig,
    workers: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> BatchResult:
    """
    Run every (parameter set, seed) pair of ``batch``.

    Args:
        base_config: Validated configuration the overrides are applied to
        batch: Sweep definition
        workers: Pool size; 0 or 1 runs in-process (defaults to cpu_count)
        on_progress: Called in this process as (current_run, total_runs, overrides)
        cancel_event: Polled between runs; once set, no further result is committed

    Returns:
        BatchResult with runs in run-index order
    """
    validate_config(base_config)
    validate_batch_config(batch)
    tasks = build_tasks(base_config, batch)
    total = len(tasks)
    if workers is None:
        workers = cpu_count()
    workers = max(1, min(workers, total or 1))

    logger.info(f"Starting batch: {total} runs on {workers} worker(s)")
    committed: Dict[int, RunResult] = {}
    canceled = False

    def cancel_requested() -> bool:
        return cancel_event is not None and cancel_event.is_set()

    def commit(result: RunResult) -> None:
        committed[result.run_index] = result
        logger.info(f"Progress: {len(committed)}/{total} runs ({result.status.value})")
        if on_progress is not None:
            on_progress(len(committed), total, dict(result.overrides))

    if workers <= 1:
        for task in tasks:
            if cancel_requested():
                canceled = True
                break
            commit(execute_run(task))
    else:
        with Pool(processes=workers) as pool:
            for result in pool.imap_unordered(execute_run, tasks):
                if cancel_requested():
                    canceled = True
                    break
                commit(result)

    runs = [
        committed.get(task.run_index)
        or RunResult(task.run_index, task.seed, dict(task.overrides), RunStatus.CANCELED)
        for task in tasks
    ]
    status = BatchStatus.CANCELED if canceled else BatchStatus.COMPLETED
    if canceled:
        logger.warning(f"Batch canceled after {len(committed)}/{total} runs")
    else:
        logger.info(f"Batch complete: {total} runs")
    return BatchResult(status=status, runs=runs)
