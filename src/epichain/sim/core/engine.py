from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List, Optional

from ..systems.lifecycle import create_cell
from ..systems.timestep import perform_timestep
from ..types.snapshot import BatchSnapshot, snapshot_from_state
from .cell import ApicalLink, BasalLink, SimulationState
from .config import CONTROL_TYPE, EMT_TYPE, GeneralConfig, SimulationConfig
from .geometry import BasalGeometry, create_basal_geometry, ellipse_from_perimeter
from .rng import DeterministicRng, Seed

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[BatchSnapshot], None]
_COMPLETION_TOLERANCE = 1e-9


class SimulationDivergedError(RuntimeError):
    """Raised when a cell coordinate stops being finite."""


def _step_seed(seed: Seed, step: int) -> str:
    return f"{seed}_step_{step}"


def build_geometry(general: GeneralConfig) -> BasalGeometry:
    if general.curvature_1 is not None and general.curvature_2 is not None:
        curvature_1, curvature_2 = general.curvature_1, general.curvature_2
    else:
        curvature_1, curvature_2 = ellipse_from_perimeter(general.perimeter, general.aspect_ratio)
    return create_basal_geometry(curvature_1, curvature_2, general.ellipse_samples)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class SimulationEngine:
    """Owns one tissue state and advances it step by step.

    The configuration is assumed to be validated already. Every step draws from
    its own RNG stream keyed by seed and step count, so the state plus the seed
    fully determine how a run continues.
    """

    def __init__(
        self,
        config: SimulationConfig,
        on_snapshot: Optional[SnapshotCallback] = None,
        snapshot_interval: Optional[int] = None,
    ):
        self._config = config
        self._on_snapshot = on_snapshot
        self.snapshot_interval = (
            config.general.snapshot_interval if snapshot_interval is None else max(0, snapshot_interval)
        )
        self._snapshots: List[BatchSnapshot] = []
        self._state = SimulationState()
        self.init()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def state(self) -> SimulationState:
        """Current state. Callers must treat it as read-only."""
        return self._state

    @property
    def seed(self) -> Seed:
        return self._config.seed

    @property
    def time(self) -> float:
        return self._state.t

    @property
    def step_count(self) -> int:
        return self._state.step_count

    @property
    def snapshots(self) -> List[BatchSnapshot]:
        return list(self._snapshots)

    def init(self) -> None:
        config = self._config
        general = config.general
        rng = DeterministicRng(config.seed)
        state = SimulationState(geometry=build_geometry(general))
        geometry = state.geometry

        if general.full_circle and geometry.is_closed:
            width = geometry.perimeter
        else:
            width = general.w_init

        positions = []
        for _ in range(general.n_init):
            arc = rng.next_range(-width, width)
            height = rng.next_range(general.h_init / 3.0, 2.0 * general.h_init / 3.0)
            positions.append(geometry.to_cartesian(arc, height))
        positions.sort(key=lambda p: geometry.arc_length(geometry.project(p)))

        first_emt = _round_half_up((general.n_init - general.n_emt) / 2.0)
        last_emt = first_emt + general.n_emt
        for index, position in enumerate(positions):
            type_name = EMT_TYPE if first_emt <= index < last_emt else CONTROL_TYPE
            state.cells.append(create_cell(config, state, rng, position, type_name))

        count = len(state.cells)
        for index in range(count - 1):
            self._link(state, index, index + 1)
        if general.full_circle and geometry.is_closed and count > 2:
            self._link(state, count - 1, 0)

        self._state = state
        self._snapshots = []
        logger.debug(
            "initialised %d cells (%d emt) on %s geometry, seed=%r",
            count,
            general.n_emt,
            geometry.kind,
            config.seed,
        )

    @staticmethod
    def _link(state: SimulationState, left: int, right: int) -> None:
        rest_length = state.cells[left].cell_type.apical_junction_init
        state.apical_links.append(ApicalLink(left, right, rest_length))
        state.basal_links.append(BasalLink(left, right))

    def reset(self) -> None:
        self.init()

    def reset_with_config(self, config: SimulationConfig) -> None:
        self._config = config
        self.init()

    def step(self) -> int:
        state = self._state
        rng = DeterministicRng(_step_seed(self._config.seed, state.step_count))
        divided = perform_timestep(state, self._config, rng)
        if self.snapshot_interval > 0 and state.step_count % self.snapshot_interval == 0:
            self._record_snapshot()
        return divided

    def is_complete(self) -> bool:
        return self._state.t >= self._config.general.t_end - _COMPLETION_TOLERANCE

    def run_to_end(self) -> None:
        while not self.is_complete():
            self.step()

    def check_finite(self) -> None:
        for cell in self._state.cells:
            if not cell.is_finite():
                raise SimulationDivergedError(
                    f"cell {cell.id} has non-finite coordinates at t={self._state.t:.4f}"
                )

    def snapshot(self, run_index: int = 0, sampled_params: Optional[Dict[str, float]] = None) -> BatchSnapshot:
        return snapshot_from_state(self._state, run_index, self._config.seed, sampled_params)

    def _record_snapshot(self) -> None:
        snapshot = self.snapshot()
        self._snapshots.append(snapshot)
        if self._on_snapshot is not None:
            self._on_snapshot(snapshot)
