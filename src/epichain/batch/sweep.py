from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..sim.core.config import ConfigError
from ..sim.core.rng import DeterministicRng

SAMPLING_MODES = ("grid", "random")


@dataclass
class ParameterRange:
    path: str
    min: float
    max: float
    steps: int = 1

    def values(self) -> List[float]:
        if self.steps <= 1:
            return [float(self.min)]
        span = self.max - self.min
        return [self.min + i * span / (self.steps - 1) for i in range(self.steps)]


@dataclass
class TimeSampleConfig:
    start: float = 0.0
    end: float = 48.0
    step: float = 1.0


@dataclass
class BatchConfig:
    parameters: List[ParameterRange] = field(default_factory=list)
    time_samples: TimeSampleConfig = field(default_factory=TimeSampleConfig)
    seeds_per_config: int = 1
    mode: str = "grid"
    random_samples: int = 10
    sampling_seed: int = 0


def validate_batch_config(batch: BatchConfig) -> BatchConfig:
    problems: List[str] = []
    for parameter in batch.parameters:
        if parameter.steps < 1:
            problems.append(f"{parameter.path}: steps must be at least 1")
        if parameter.min > parameter.max:
            problems.append(f"{parameter.path}: min must not exceed max")
    if batch.seeds_per_config < 1:
        problems.append("seeds_per_config must be at least 1")
    if batch.mode not in SAMPLING_MODES:
        problems.append(f"mode must be one of {', '.join(SAMPLING_MODES)}")
    if batch.mode == "random" and batch.random_samples < 1:
        problems.append("random_samples must be at least 1")
    samples = batch.time_samples
    if not samples.step > 0:
        problems.append("time_samples.step must be positive")
    if samples.end < samples.start:
        problems.append("time_samples.end must not precede start")
    if problems:
        raise ConfigError(problems)
    return batch


def time_samples(config: TimeSampleConfig) -> List[float]:
    """Sample times from start to end inclusive."""
    count = int((config.end - config.start) / config.step + 1e-9) + 1
    return [config.start + i * config.step for i in range(max(0, count))]


def generate_parameter_configs(
    parameters: List[ParameterRange],
    mode: str = "grid",
    count: int = 10,
    seed: int = 0,
) -> List[Dict[str, float]]:
    """Parameter override sets, in a deterministic order."""
    if not parameters:
        return [{}]
    if mode == "random":
        rng = DeterministicRng(seed)
        return [
            {parameter.path: rng.next_range(parameter.min, parameter.max) for parameter in parameters}
            for _ in range(count)
        ]
    paths = [parameter.path for parameter in parameters]
    grids = [parameter.values() for parameter in parameters]
    return [dict(zip(paths, combo)) for combo in itertools.product(*grids)]


def compute_total_runs(
    parameters: List[ParameterRange],
    seeds_per_config: int,
    mode: str = "grid",
    count: Optional[int] = None,
) -> int:
    if not parameters:
        configs = 1
    elif mode == "random":
        configs = count if count is not None else 10
    else:
        configs = 1
        for parameter in parameters:
            configs *= max(1, parameter.steps)
    return configs * seeds_per_config
