from __future__ import annotations

import math
from typing import List

from ..core.cell import CellPhase, SimulationState
from ..core.config import SimulationConfig
from ..core.rng import DeterministicRng
from ..utils.vector import Vec2
from .constraints import apply_all_constraints
from .division import process_divisions
from .events import process_emt_events
from .forces import CellForces, compute_forces
from .lifecycle import update_phases

# a running basal point stops advancing once this far from its nucleus
RUNNING_REACH = 5.0


def update_cytoskeleton(state: SimulationState, dt: float) -> None:
    """Relax the apical and basal rest lengths toward their phase targets."""
    geometry = state.geometry
    for cell in state.cells:
        cell_type = cell.cell_type
        if cell.phase in (CellPhase.G2, CellPhase.MITOSIS) and cell.has_inm:
            target_a = 0.0
            target_b = max(0.0, cell.apical.distance_to(cell.basal) - 2.0 * cell.r_soft)
        else:
            target_a = max(0.0, cell.apical.distance_to(cell.nucleus) - cell.r_soft)
            target_b = max(0.0, cell.basal.distance_to(cell.nucleus) - cell.r_soft)

        if cell.phase == CellPhase.G2:
            cell.stiffness_apical_apical = cell_type.stiffness_apical_apical_div
        elif cell.phase == CellPhase.MITOSIS:
            cell.r_hard = cell_type.r_hard_div

        if not cell.has_apical:
            target_a = 0.0
        if not cell.has_basal:
            target_b = 0.0

        decay = math.exp(-dt * cell_type.k_cytos)
        cell.eta_a = decay * (cell.eta_a - target_a) + target_a
        cell.eta_b = decay * (cell.eta_b - target_b) + target_b

        if not cell.has_basal and cell.running_mode >= 2 and geometry.signed_height(cell.basal) > 0:
            cell.eta_b = max(0.0, cell.basal.distance_to(cell.nucleus) - cell.r_soft)

        total = cell.eta_a + cell.eta_b
        max_length = cell_type.max_cytoskeleton_length
        # zero disables the cap, and it tolerates up to one unit of excess
        if (not cell.is_running or cell.has_basal) and max_length > 0 and total - max_length > 1.0:
            goal_a = max_length * cell.eta_a / total
            goal_b = max_length * cell.eta_b / total
            cell.eta_a = decay * (cell.eta_a - goal_a) + goal_a
            cell.eta_b = decay * (cell.eta_b - goal_b) + goal_b


def update_apical_junctions(state: SimulationState, dt: float) -> None:
    cells = state.cells
    for link in state.apical_links:
        rate = 0.5 * (
            cells[link.left].cell_type.k_apical_junction + cells[link.right].cell_type.k_apical_junction
        )
        link.rest_length *= math.exp(-dt * rate)


def integrate_forces(
    state: SimulationState,
    forces: List[CellForces],
    config: SimulationConfig,
    rng: DeterministicRng,
    dt: float,
) -> None:
    scale = dt / config.general.mu
    noise_scale = math.sqrt(dt)
    for cell, force in zip(state.cells, forces):
        # both draws happen even without diffusion so the stream stays aligned
        noise = Vec2(rng.next_gaussian(), rng.next_gaussian()) * (noise_scale * cell.cell_type.diffusion)
        cell.nucleus = cell.nucleus + noise + force.nucleus * scale
        cell.apical = cell.apical + force.apical * scale

        if cell.is_running:
            to_basal = cell.basal - cell.nucleus
            if to_basal.length() < RUNNING_REACH:
                cell.basal = cell.basal + to_basal.normalized() * (dt * cell.cell_type.running_speed)
        else:
            cell.basal = cell.basal + force.basal * scale
            if not cell.has_basal:
                cell.basal = cell.basal + Vec2(0.0, force.basal.y * scale)


def perform_timestep(state: SimulationState, config: SimulationConfig, rng: DeterministicRng) -> int:
    """Advance one full step; returns the number of divisions it produced."""
    general = config.general
    dt = general.dt
    update_phases(state)
    divided = process_divisions(state, config, rng)
    process_emt_events(state, dt)
    update_cytoskeleton(state, dt)
    update_apical_junctions(state, dt)

    sub_dt = dt / general.n_substeps
    for _ in range(general.n_substeps):
        state.t += sub_dt
        forces = compute_forces(state, config)
        integrate_forces(state, forces, config, rng, sub_dt)
        apply_all_constraints(state, config)
    state.step_count += 1
    return divided
