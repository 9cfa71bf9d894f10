from __future__ import annotations

import logging

from ..core.cell import ApicalLink, BasalLink, CellPhase, SimulationState
from ..core.config import EMT_TYPE, SimulationConfig
from ..core.rng import DeterministicRng
from .lifecycle import create_cell, reset_cell_in_place

logger = logging.getLogger(__name__)

DIVISION_OFFSET_FRACTION = 0.05


def divide_cell(state: SimulationState, config: SimulationConfig, rng: DeterministicRng, index: int) -> int:
    """Split the cell at ``index`` and splice the daughter in on its right.

    Returns the daughter's index in ``state.cells``.
    """
    parent = state.cells[index]
    reset_cell_in_place(state, rng, parent)
    daughter = create_cell(config, state, rng, parent.nucleus, parent.type_name, parent=parent)

    offset = state.geometry.tangent(parent.basal) * (DIVISION_OFFSET_FRACTION * parent.r_soft)
    parent.nucleus = parent.nucleus - offset
    parent.apical = parent.apical - offset
    parent.basal = parent.basal - offset
    daughter.nucleus = daughter.nucleus + offset
    daughter.apical = daughter.apical + offset
    daughter.basal = daughter.basal + offset

    daughter_index = len(state.cells)
    state.cells.append(daughter)
    for link in state.apical_links:
        if link.left == index:
            link.left = daughter_index
    for link in state.basal_links:
        if link.left == index:
            link.left = daughter_index
    state.apical_links.append(ApicalLink(index, daughter_index, parent.cell_type.apical_junction_init))
    state.basal_links.append(BasalLink(index, daughter_index))
    logger.debug("cell %s divided into %s at t=%.3f", parent.id, daughter.id, state.t)
    return daughter_index


def process_divisions(state: SimulationState, config: SimulationConfig, rng: DeterministicRng) -> int:
    """Handle every cell that reached DIVISION; returns the number of new cells."""
    divided = 0
    # daughters appended during the loop are newborn and never due yet
    for index in range(len(state.cells)):
        cell = state.cells[index]
        if cell.phase != CellPhase.DIVISION:
            continue
        if cell.type_name == EMT_TYPE or rng.next_float() < config.general.p_div_out:
            reset_cell_in_place(state, rng, cell)
            continue
        divide_cell(state, config, rng, index)
        divided += 1
    state.divisions += divided
    return divided
