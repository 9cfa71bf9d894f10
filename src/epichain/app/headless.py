from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..batch.runner import BatchResult, run_batch
from ..batch.sweep import BatchConfig, ParameterRange, TimeSampleConfig
from ..sim.core.config import EMT_TYPE, SimulationConfig, validate_config
from ..sim.core.engine import SimulationEngine
from ..sim.core.rng import Seed

logger = logging.getLogger(__name__)


def _parse_seed(value: str) -> Seed:
    try:
        return int(value)
    except ValueError:
        return value


def _load(config_path: Optional[Path], seed: Optional[Seed]) -> SimulationConfig:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    return validate_config(config)


def summarize(engine: SimulationEngine) -> Dict[str, Any]:
    cells = engine.state.cells
    return {
        "steps": engine.step_count,
        "seed": engine.seed,
        "time": round(engine.time, 6),
        "cells": len(cells),
        "divisions": engine.state.divisions,
        "emt_cells": sum(1 for cell in cells if cell.type_name == EMT_TYPE),
        "apical_detached": sum(1 for cell in cells if not cell.has_apical),
        "basal_detached": sum(1 for cell in cells if not cell.has_basal),
        "running": sum(1 for cell in cells if cell.is_running),
    }


def run_headless(
    steps: Optional[int],
    seed: Optional[Seed],
    summary_path: Optional[Path],
    config_path: Optional[Path] = None,
    snapshot_interval: Optional[int] = None,
) -> Dict[str, Any]:
    config = _load(config_path, seed)
    engine = SimulationEngine(config, snapshot_interval=snapshot_interval)
    if steps is None:
        engine.run_to_end()
    else:
        for _ in range(steps):
            engine.step()
    engine.check_finite()

    summary = summarize(engine)
    if summary_path:
        payload = dict(summary)
        payload["snapshots"] = [asdict(snapshot) for snapshot in engine.snapshots]
        Path(summary_path).write_text(json.dumps(payload, indent=2))
    logger.info("Run finished at t=%.3f with %d cells", engine.time, summary["cells"])
    return summary


def parse_sweep(text: str) -> ParameterRange:
    """Parse ``path=min:max:steps`` (steps defaults to 1)."""
    try:
        path, bounds = text.split("=", 1)
        parts = bounds.split(":")
        low = float(parts[0])
        high = float(parts[1]) if len(parts) > 1 else low
        steps = int(parts[2]) if len(parts) > 2 else 1
    except (ValueError, IndexError) as exc:
        raise argparse.ArgumentTypeError(f"invalid sweep {text!r}, expected path=min:max:steps") from exc
    return ParameterRange(path=path.strip(), min=low, max=high, steps=steps)


def parse_times(text: str) -> TimeSampleConfig:
    try:
        start, end, step = (float(part) for part in text.split(":"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid time samples {text!r}, expected start:end:step") from exc
    return TimeSampleConfig(start=start, end=end, step=step)


def batch_payload(result: BatchResult) -> Dict[str, Any]:
    return {
        "status": result.status.value,
        "total_runs": result.total_runs,
        "runs": [
            {
                "run_index": run.run_index,
                "seed": run.seed,
                "overrides": run.overrides,
                "status": run.status.value,
                "error": run.error,
            }
            for run in result.runs
        ],
        "snapshots": [asdict(snapshot) for snapshot in result.snapshots],
    }


def run_batch_headless(
    sweeps: List[ParameterRange],
    times: TimeSampleConfig,
    seeds: int,
    output_path: Optional[Path],
    config_path: Optional[Path] = None,
    seed: Optional[Seed] = None,
    workers: Optional[int] = None,
    mode: str = "grid",
    samples: int = 10,
) -> BatchResult:
    config = _load(config_path, seed)
    batch = BatchConfig(
        parameters=sweeps,
        time_samples=times,
        seeds_per_config=seeds,
        mode=mode,
        random_samples=samples,
    )
    result = run_batch(config, batch, workers=workers)
    if output_path:
        Path(output_path).write_text(json.dumps(batch_payload(result), indent=2))
    return result


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Headless epithelial chain simulation")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    run_parser = sub.add_parser("run", help="Run a single simulation")
    run_parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    run_parser.add_argument("--seed", type=_parse_seed, default=None)
    run_parser.add_argument("--steps", type=int, default=None, help="Steps to run (default: until t_end)")
    run_parser.add_argument("--snapshot-interval", type=int, default=None)
    run_parser.add_argument("--summary", type=Path, default=None, help="JSON file to write the summary")

    batch_parser = sub.add_parser("batch", help="Run a parameter sweep")
    batch_parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    batch_parser.add_argument("--seed", type=_parse_seed, default=None, help="Base seed")
    batch_parser.add_argument(
        "--sweep",
        type=parse_sweep,
        action="append",
        default=[],
        help="Parameter range as path=min:max:steps, repeatable",
    )
    batch_parser.add_argument("--seeds", type=int, default=1, help="Seeds per parameter set")
    batch_parser.add_argument("--times", type=parse_times, default=TimeSampleConfig(), help="start:end:step")
    batch_parser.add_argument("--mode", choices=("grid", "random"), default="grid")
    batch_parser.add_argument("--samples", type=int, default=10, help="Parameter sets in random mode")
    batch_parser.add_argument("--workers", type=int, default=None)
    batch_parser.add_argument("--output", type=Path, default=None, help="JSON file to write results")

    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.command == "run":
        summary = run_headless(
            args.steps,
            args.seed,
            args.summary,
            config_path=args.config,
            snapshot_interval=args.snapshot_interval,
        )
        print(json.dumps(summary))
    else:
        result = run_batch_headless(
            args.sweep,
            args.times,
            args.seeds,
            args.output,
            config_path=args.config,
            seed=args.seed,
            workers=args.workers,
            mode=args.mode,
            samples=args.samples,
        )
        print(json.dumps({"status": result.status.value, "completed": result.completed_runs, "failed": result.failed_runs}))


if __name__ == "__main__":
    main()
