from __future__ import annotations

import math
from typing import Optional

from ..core.cell import Cell, CellPhase, SimulationState
from ..core.config import CellTypeConfig, SimulationConfig
from ..core.rng import DeterministicRng
from ..utils.vector import Vec2

# chance that a heterogeneous cell keeps each of its scheduled events
HETERO_KEEP_PROBABILITY = 0.7


def resolve_cell_type(config: SimulationConfig, type_name: str) -> CellTypeConfig:
    return config.cell_type(type_name)


def _sample_event_times(cell: Cell, cell_type: CellTypeConfig, rng: DeterministicRng) -> None:
    events = cell_type.events
    cell.time_a = rng.next_range(*events.time_a)
    cell.time_b = rng.next_range(*events.time_b)
    cell.time_s = rng.next_range(*events.time_s)
    cell.time_p = cell.time_b if rng.next_float() < cell_type.run else math.inf
    if cell_type.hetero:
        if rng.next_float() > HETERO_KEEP_PROBABILITY:
            cell.time_a = math.inf
        if rng.next_float() > HETERO_KEEP_PROBABILITY:
            cell.time_b = math.inf
        if rng.next_float() > HETERO_KEEP_PROBABILITY:
            cell.time_s = math.inf


def create_cell(
    config: SimulationConfig,
    state: SimulationState,
    rng: DeterministicRng,
    position: Vec2,
    type_name: str,
    parent: Optional[Cell] = None,
) -> Cell:
    """Create a cell anchored on the basal curve below ``position``.

    Without a parent the cell gets a random age within its lifespan and freshly
    sampled event times. With a parent it is a newborn daughter: it starts at
    the parent's points and inherits rest lengths, adhesion, running state,
    event times and the weakened stiffnesses.
    """
    cell_type = resolve_cell_type(config, type_name)
    t = state.t
    lifespan = rng.next_range(*cell_type.lifespan)
    cell = Cell(
        id=state.allocate_cell_id(),
        type_name=type_name,
        cell_type=cell_type,
        r_soft=cell_type.r_soft,
        r_hard=cell_type.r_hard,
        stiffness_apical_apical=cell_type.stiffness_apical_apical,
    )

    if parent is None:
        geometry = state.geometry
        basal = geometry.project(position)
        cell.nucleus = position
        cell.basal = basal
        cell.apical = basal + geometry.normal(basal) * config.general.h_init
        cell.birth_time = t - rng.next_range(0.0, lifespan)
        cell.division_time = cell.birth_time + lifespan
        _sample_event_times(cell, cell_type, rng)
        cell.running_mode = cell_type.running_mode
        cell.has_inm = rng.next_float() < cell_type.inm
        cell.eta_a = 0.5 * config.general.h_init
        cell.eta_b = 0.5 * config.general.h_init
        cell.stiffness_straightness = cell_type.stiffness_straightness
        cell.stiffness_nuclei_apical = cell_type.stiffness_nuclei_apical
        cell.stiffness_nuclei_basal = cell_type.stiffness_nuclei_basal
    else:
        cell.nucleus = parent.nucleus
        cell.apical = parent.apical
        cell.basal = parent.basal
        cell.birth_time = t
        cell.division_time = t + lifespan
        cell.eta_a = parent.eta_a
        cell.eta_b = parent.eta_b
        cell.has_apical = parent.has_apical
        cell.has_basal = parent.has_basal
        cell.is_running = parent.is_running
        cell.running_mode = parent.running_mode
        cell.has_inm = parent.has_inm
        cell.time_a = parent.time_a
        cell.time_b = parent.time_b
        cell.time_s = parent.time_s
        cell.time_p = parent.time_p
        cell.stiffness_straightness = parent.stiffness_straightness
        cell.stiffness_nuclei_apical = parent.stiffness_nuclei_apical
        cell.stiffness_nuclei_basal = parent.stiffness_nuclei_basal

    update_cell_phase(cell, t)
    return cell


def reset_cell_in_place(state: SimulationState, rng: DeterministicRng, cell: Cell) -> None:
    """Start a new cycle for ``cell`` keeping its id, points and inherited state."""
    cell_type = cell.cell_type
    lifespan = rng.next_range(*cell_type.lifespan)
    cell.birth_time = state.t
    cell.division_time = state.t + lifespan
    cell.phase = CellPhase.G1
    cell.r_soft = cell_type.r_soft
    cell.r_hard = cell_type.r_hard
    cell.stiffness_apical_apical = cell_type.stiffness_apical_apical


def update_cell_phase(cell: Cell, t: float) -> CellPhase:
    cell_type = cell.cell_type
    mitosis_start = cell.division_time - cell_type.dur_mitosis
    g2_start = mitosis_start - cell_type.dur_g2
    if t < g2_start:
        cell.phase = CellPhase.G1
    elif t < mitosis_start:
        cell.phase = CellPhase.G2
    elif t < cell.division_time:
        cell.phase = CellPhase.MITOSIS
    else:
        cell.phase = CellPhase.DIVISION
    return cell.phase


def update_phases(state: SimulationState) -> None:
    for cell in state.cells:
        update_cell_phase(cell, state.t)
