from __future__ import annotations

import copy
import dataclasses
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .rng import Seed

INF = math.inf
CONTROL_TYPE = "control"
EMT_TYPE = "emt"
REQUIRED_CELL_TYPES = (CONTROL_TYPE, EMT_TYPE)


class ConfigError(ValueError):
    """Raised when a configuration cannot drive a simulation."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


@dataclass
class EventTimesConfig:
    time_a: tuple[float, float] = (INF, INF)
    time_b: tuple[float, float] = (INF, INF)
    time_s: tuple[float, float] = (INF, INF)


@dataclass
class CellTypeConfig:
    r_hard: float = 0.4
    r_hard_div: float = 0.7
    r_soft: float = 1.2
    dur_g2: float = 0.5
    dur_mitosis: float = 0.5
    k_apical_junction: float = 5.0
    k_cytos: float = 5.0
    max_cytoskeleton_length: float = 0.5
    run: float = 0.0
    running_speed: float = 1.0
    running_mode: int = 0
    stiffness_apical_apical: float = 2.0
    stiffness_apical_apical_div: float = 4.0
    stiffness_nuclei_apical: float = 3.0
    stiffness_nuclei_basal: float = 2.0
    stiffness_repulsion: float = 2.0
    stiffness_straightness: float = 5.0
    lifespan: tuple[float, float] = (5.5, 6.5)
    inm: float = 0.0
    hetero: bool = False
    diffusion: float = 0.2
    max_basal_junction_dist: float = 4.0
    apical_junction_init: float = 0.0
    events: EventTimesConfig = field(default_factory=EventTimesConfig)


def default_control_type() -> CellTypeConfig:
    return CellTypeConfig()


def default_emt_type() -> CellTypeConfig:
    return CellTypeConfig(
        k_apical_junction=1.0,
        stiffness_repulsion=4.0,
        stiffness_straightness=2.0,
        hetero=True,
        events=EventTimesConfig(time_a=(3.0, 12.0), time_b=(3.0, 12.0)),
    )


def _default_cell_types() -> Dict[str, CellTypeConfig]:
    return {CONTROL_TYPE: default_control_type(), EMT_TYPE: default_emt_type()}


@dataclass
class GeneralConfig:
    t_end: float = 48.0
    dt: float = 0.1
    n_substeps: int = 30
    mu: float = 0.2
    n_init: int = 30
    n_emt: int = 5
    w_init: float = 80.0
    h_init: float = 5.0
    full_circle: bool = True
    perimeter: float = 105.0
    # b/a of the basal ellipse; 0 gives a straight line, the sign picks the side
    aspect_ratio: float = 1.0
    # explicit curvatures win over perimeter/aspect_ratio when both are set
    curvature_1: Optional[float] = None
    curvature_2: Optional[float] = None
    ellipse_samples: int = 360
    p_div_out: float = 1.0
    hard_sphere_nuclei: bool = True
    snapshot_interval: int = 0


@dataclass
class SimulationConfig:
    seed: Seed = 0
    general: GeneralConfig = field(default_factory=GeneralConfig)
    cell_types: Dict[str, CellTypeConfig] = field(default_factory=_default_cell_types)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)

    def cell_type(self, name: str) -> CellTypeConfig:
        try:
            return self.cell_types[name]
        except KeyError:
            raise ConfigError([f"unknown cell type {name!r}"]) from None

    def copy(self) -> "SimulationConfig":
        return copy.deepcopy(self)


def _float(value: Any) -> float:
    # YAML writes infinity as .inf; plain strings such as "inf" are accepted too
    return float(value)


def _pair(value: tuple[float, float] | list[float] | None, default: tuple[float, float]) -> tuple[float, float]:
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return (_float(value[0]), _float(value[1]))
    if isinstance(value, (int, float, str)):
        scalar = _float(value)
        return (scalar, scalar)
    return default


def _load_events(raw: dict, default: EventTimesConfig) -> EventTimesConfig:
    return EventTimesConfig(
        time_a=_pair(raw.get("time_a"), default.time_a),
        time_b=_pair(raw.get("time_b"), default.time_b),
        time_s=_pair(raw.get("time_s"), default.time_s),
    )


def _load_cell_type(raw: dict, default: CellTypeConfig) -> CellTypeConfig:
    values = dict(raw)
    events = _load_events(values.pop("events", {}) or {}, default.events)
    lifespan = _pair(values.pop("lifespan", None), default.lifespan)
    try:
        cell_type = dataclasses.replace(default, **values)
    except TypeError as exc:
        raise ConfigError([f"invalid cell type settings: {exc}"]) from exc
    cell_type.lifespan = lifespan
    cell_type.events = events
    return cell_type


def load_config(raw: dict) -> SimulationConfig:
    defaults = _default_cell_types()
    cell_types: Dict[str, CellTypeConfig] = {}
    raw_types = raw.get("cell_types", {}) or {}
    for name in list(defaults) + [name for name in raw_types if name not in defaults]:
        base = defaults.get(name, default_control_type())
        cell_types[name] = _load_cell_type(raw_types.get(name, {}) or {}, base)

    try:
        general = GeneralConfig(**(raw.get("general", {}) or {}))
    except TypeError as exc:
        raise ConfigError([f"invalid general settings: {exc}"]) from exc
    config = SimulationConfig(
        seed=raw.get("seed", 0),
        general=general,
        cell_types=cell_types,
    )
    validate_config(config)
    return config


def _check_range(problems: List[str], label: str, value: tuple[float, float]) -> None:
    low, high = value
    if math.isnan(low) or math.isnan(high) or low > high:
        problems.append(f"{label} must be an ordered (min, max) pair, got {value!r}")


def validate_config(config: SimulationConfig) -> SimulationConfig:
    problems: List[str] = []
    general = config.general

    if not general.dt > 0:
        problems.append("general.dt must be positive")
    if general.n_substeps < 1:
        problems.append("general.n_substeps must be at least 1")
    if not general.mu > 0:
        problems.append("general.mu must be positive")
    if not general.t_end > 0:
        problems.append("general.t_end must be positive")
    if general.n_init < 0:
        problems.append("general.n_init must not be negative")
    if not 0 <= general.n_emt <= general.n_init:
        problems.append("general.n_emt must lie within [0, n_init]")
    if not general.h_init > 0:
        problems.append("general.h_init must be positive")
    if not general.w_init > 0:
        problems.append("general.w_init must be positive")
    if not general.perimeter > 0:
        problems.append("general.perimeter must be positive")
    if not 0.0 <= general.p_div_out <= 1.0:
        problems.append("general.p_div_out must be a probability")
    if general.ellipse_samples < 3:
        problems.append("general.ellipse_samples must be at least 3")
    if general.snapshot_interval < 0:
        problems.append("general.snapshot_interval must not be negative")
    if (general.curvature_1 is None) != (general.curvature_2 is None):
        problems.append("general.curvature_1 and general.curvature_2 must be set together")

    for name in REQUIRED_CELL_TYPES:
        if name not in config.cell_types:
            problems.append(f"cell_types.{name} is required")

    for name, cell_type in config.cell_types.items():
        prefix = f"cell_types.{name}"
        for attr in ("r_soft", "r_hard", "r_hard_div"):
            if not getattr(cell_type, attr) > 0:
                problems.append(f"{prefix}.{attr} must be positive")
        for attr in (
            "dur_g2",
            "dur_mitosis",
            "k_apical_junction",
            "k_cytos",
            "max_cytoskeleton_length",
            "running_speed",
            "diffusion",
            "max_basal_junction_dist",
            "apical_junction_init",
            "stiffness_apical_apical",
            "stiffness_apical_apical_div",
            "stiffness_nuclei_apical",
            "stiffness_nuclei_basal",
            "stiffness_repulsion",
            "stiffness_straightness",
        ):
            if getattr(cell_type, attr) < 0:
                problems.append(f"{prefix}.{attr} must not be negative")
        for attr in ("run", "inm"):
            if not 0.0 <= getattr(cell_type, attr) <= 1.0:
                problems.append(f"{prefix}.{attr} must be a probability")
        if cell_type.running_mode not in (0, 1, 2, 3):
            problems.append(f"{prefix}.running_mode must be 0, 1, 2 or 3")
        _check_range(problems, f"{prefix}.lifespan", cell_type.lifespan)
        if not cell_type.lifespan[0] > 0:
            problems.append(f"{prefix}.lifespan must be positive")
        _check_range(problems, f"{prefix}.events.time_a", cell_type.events.time_a)
        _check_range(problems, f"{prefix}.events.time_b", cell_type.events.time_b)
        _check_range(problems, f"{prefix}.events.time_s", cell_type.events.time_s)

    if problems:
        raise ConfigError(problems)
    return config


def _resolve_parent(config: SimulationConfig, parts: List[str]) -> Any:
    target: Any = config
    for part in parts:
        if isinstance(target, dict):
            if part not in target:
                raise ConfigError([f"unknown config path segment {part!r}"])
            target = target[part]
        elif dataclasses.is_dataclass(target) and hasattr(target, part):
            target = getattr(target, part)
        else:
            raise ConfigError([f"unknown config path segment {part!r}"])
    return target


def get_config_value(config: SimulationConfig, path: str) -> Any:
    parts = path.split(".")
    parent = _resolve_parent(config, parts[:-1])
    leaf = parts[-1]
    if isinstance(parent, dict):
        if leaf not in parent:
            raise ConfigError([f"unknown config path {path!r}"])
        return parent[leaf]
    if not hasattr(parent, leaf):
        raise ConfigError([f"unknown config path {path!r}"])
    return getattr(parent, leaf)


def _coerce(current: Any, value: Any) -> Any:
    if isinstance(current, bool):
        return bool(value)
    if isinstance(current, int) and not isinstance(value, bool):
        return int(round(float(value)))
    if isinstance(current, float):
        return float(value)
    if isinstance(current, tuple) and isinstance(value, (int, float)):
        return (float(value), float(value))
    return value


def set_config_value(config: SimulationConfig, path: str, value: Any) -> None:
    """Set a dotted path such as ``general.n_emt`` or ``cell_types.emt.run``."""
    current = get_config_value(config, path)
    parts = path.split(".")
    parent = _resolve_parent(config, parts[:-1])
    coerced = _coerce(current, value)
    if isinstance(parent, dict):
        parent[parts[-1]] = coerced
    else:
        setattr(parent, parts[-1], coerced)
