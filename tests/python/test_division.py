from __future__ import annotations

from epichain.sim.core.cell import CellPhase, SimulationState
from epichain.sim.core.config import SimulationConfig
from epichain.sim.core.engine import SimulationEngine
from epichain.sim.core.rng import DeterministicRng
from epichain.sim.systems.division import process_divisions


def _line_config(n_init: int = 4, n_emt: int = 0) -> SimulationConfig:
    config = SimulationConfig(seed=21)
    config.general.n_init = n_init
    config.general.n_emt = n_emt
    config.general.aspect_ratio = 0.0
    config.general.full_circle = False
    config.general.p_div_out = 0.0
    return config


def _chain_order(state: SimulationState) -> list[int]:
    """Walk the basal links from the chain head; returns visited cell indices."""
    successors = {}
    predecessors = set()
    for link in state.basal_links:
        assert link.left not in successors, "cell has two right neighbours"
        successors[link.left] = link.right
        predecessors.add(link.right)
    heads = [index for index in range(len(state.cells)) if index not in predecessors]
    assert len(heads) == 1
    order = [heads[0]]
    while order[-1] in successors:
        order.append(successors[order[-1]])
    return order


def test_true_division_adds_one_cell_and_keeps_chain():
    engine = SimulationEngine(_line_config())
    state = engine.state
    config = engine.config
    assert _chain_order(state) == [0, 1, 2, 3]

    state.cells[1].phase = CellPhase.DIVISION
    parent_id = state.cells[1].id
    divided = process_divisions(state, config, DeterministicRng("division"))

    assert divided == 1
    assert state.divisions == 1
    assert len(state.cells) == 5
    assert len(state.basal_links) == 4
    assert len(state.apical_links) == 4
    assert _chain_order(state) == [0, 1, 4, 2, 3]
    parent = state.cells[1]
    daughter = state.cells[4]
    assert parent.id == parent_id
    assert daughter.id == 4
    assert daughter.basal.x > parent.basal.x
    assert parent.phase == CellPhase.G1
    new_link = state.apical_links[-1]
    assert (new_link.left, new_link.right) == (1, 4)
    assert new_link.rest_length == config.cell_type("control").apical_junction_init
    pairs = {(link.left, link.right) for link in state.apical_links}
    assert pairs == {(0, 1), (1, 4), (4, 2), (2, 3)}


def test_emt_cells_divide_out_in_place():
    config = _line_config(n_init=4, n_emt=4)
    engine = SimulationEngine(config)
    state = engine.state
    for cell in state.cells:
        cell.phase = CellPhase.DIVISION
    ids = [cell.id for cell in state.cells]

    divided = process_divisions(state, config, DeterministicRng(0))

    assert divided == 0
    assert [cell.id for cell in state.cells] == ids
    assert all(cell.phase == CellPhase.G1 for cell in state.cells)
    assert all(cell.birth_time == state.t for cell in state.cells)


def test_divide_out_probability_one_never_adds_cells():
    config = _line_config()
    config.general.p_div_out = 1.0
    engine = SimulationEngine(config)
    state = engine.state
    state.cells[0].phase = CellPhase.DIVISION
    assert process_divisions(state, config, DeterministicRng(0)) == 0
    assert len(state.cells) == 4


def test_last_cell_division_extends_chain_tail():
    engine = SimulationEngine(_line_config(n_init=3))
    state = engine.state
    state.cells[2].phase = CellPhase.DIVISION
    process_divisions(state, engine.config, DeterministicRng(1))
    assert _chain_order(state) == [0, 1, 2, 3]
