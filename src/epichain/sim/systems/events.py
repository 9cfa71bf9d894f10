from __future__ import annotations

import logging

from ..core.cell import Cell, SimulationState

logger = logging.getLogger(__name__)

ADHESION_LOSS_STIFFNESS_FACTOR = 0.1
LOST_STRAIGHTNESS_STIFFNESS = 1.0
RUNNING_MODE_ACTIVE = 3
# basal points further than this below the curve no longer count as running
RUNNING_DEPTH_LIMIT = -2.0


def _crosses(t: float, dt: float, event_time: float) -> bool:
    return t <= event_time < t + dt


def apply_cell_events(cell: Cell, t: float, dt: float) -> None:
    if _crosses(t, dt, cell.time_a):
        cell.has_apical = False
        cell.stiffness_nuclei_apical *= ADHESION_LOSS_STIFFNESS_FACTOR
        logger.debug("cell %s lost apical adhesion at t=%.3f", cell.id, t)
    if _crosses(t, dt, cell.time_b):
        cell.has_basal = False
        cell.stiffness_nuclei_basal *= ADHESION_LOSS_STIFFNESS_FACTOR
        logger.debug("cell %s lost basal adhesion at t=%.3f", cell.id, t)
    if _crosses(t, dt, cell.time_s):
        cell.stiffness_straightness = LOST_STRAIGHTNESS_STIFFNESS
    if _crosses(t, dt, max(cell.time_p, cell.time_b)):
        cell.running_mode = RUNNING_MODE_ACTIVE
        logger.debug("cell %s started running at t=%.3f", cell.id, t)


def update_running_state(state: SimulationState) -> None:
    geometry = state.geometry
    for cell in state.cells:
        if cell.has_basal:
            cell.is_running = False
            continue
        height = geometry.signed_height(cell.basal)
        cell.is_running = height > RUNNING_DEPTH_LIMIT and (
            cell.running_mode >= RUNNING_MODE_ACTIVE or (height < 0 and cell.running_mode >= 1)
        )


def process_emt_events(state: SimulationState, dt: float) -> None:
    for cell in state.cells:
        apply_cell_events(cell, state.t, dt)
    update_running_state(state)
