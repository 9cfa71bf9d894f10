from __future__ import annotations

import math

from pytest import approx

from epichain.sim.core.cell import Cell, CellPhase, SimulationState
from epichain.sim.core.config import SimulationConfig
from epichain.sim.core.geometry import StraightLineGeometry
from epichain.sim.core.rng import DeterministicRng
from epichain.sim.systems.lifecycle import create_cell, reset_cell_in_place, update_cell_phase
from epichain.sim.utils.vector import Vec2


def _line_state(t: float = 0.0) -> SimulationState:
    return SimulationState(geometry=StraightLineGeometry(), t=t)


def test_cell_and_links_use_slots():
    config = SimulationConfig()
    cell = Cell(id=0, type_name="control", cell_type=config.cell_type("control"))
    assert not hasattr(cell, "__dict__")
    assert not hasattr(SimulationState(), "__dict__")


def test_fresh_cell_is_anchored_on_curve():
    config = SimulationConfig()
    state = _line_state(t=2.0)
    rng = DeterministicRng(3)
    cell = create_cell(config, state, rng, Vec2(4.0, 2.0), "control")

    assert cell.id == 0
    assert state.next_cell_id == 1
    assert cell.nucleus == Vec2(4.0, 2.0)
    assert cell.basal == Vec2(4.0, 0.0)
    assert cell.apical == Vec2(4.0, config.general.h_init)
    assert cell.eta_a == approx(config.general.h_init / 2)
    assert cell.eta_b == approx(config.general.h_init / 2)
    assert cell.birth_time <= state.t
    assert cell.division_time > cell.birth_time
    lifespan = cell.division_time - cell.birth_time
    assert 5.5 <= lifespan <= 6.5
    assert cell.division_time >= state.t
    assert cell.time_a == math.inf
    assert cell.time_p == math.inf
    assert cell.stiffness_straightness == 5.0


def test_emt_cells_sample_event_times():
    config = SimulationConfig()
    config.cell_types["emt"].hetero = False
    state = _line_state()
    rng = DeterministicRng(11)
    for _ in range(20):
        cell = create_cell(config, state, rng, Vec2(0.0, 1.0), "emt")
        assert 3.0 <= cell.time_a <= 12.0
        assert 3.0 <= cell.time_b <= 12.0
        assert cell.time_s == math.inf


def test_running_gate_copies_basal_time():
    config = SimulationConfig()
    emt = config.cell_types["emt"]
    emt.run = 1.0
    emt.hetero = False
    cell = create_cell(config, _line_state(), DeterministicRng(1), Vec2(0.0, 1.0), "emt")
    assert cell.time_p == cell.time_b


def test_ids_are_unique_and_monotonic():
    config = SimulationConfig()
    state = _line_state()
    rng = DeterministicRng(2)
    ids = [create_cell(config, state, rng, Vec2(float(i), 1.0), "control").id for i in range(5)]
    assert ids == [0, 1, 2, 3, 4]


def test_daughter_inherits_parent_state():
    config = SimulationConfig()
    state = _line_state(t=10.0)
    rng = DeterministicRng(5)
    parent = create_cell(config, state, rng, Vec2(1.0, 2.0), "emt")
    parent.has_apical = False
    parent.stiffness_nuclei_apical = 0.3
    parent.stiffness_apical_apical = 4.0
    parent.eta_a = 0.7
    parent.running_mode = 3

    daughter = create_cell(config, state, rng, parent.nucleus, "emt", parent=parent)
    assert daughter.id != parent.id
    assert daughter.birth_time == 10.0
    assert daughter.phase == CellPhase.G1
    assert daughter.has_apical is False
    assert daughter.stiffness_nuclei_apical == 0.3
    assert daughter.eta_a == 0.7
    assert daughter.running_mode == 3
    assert daughter.time_a == parent.time_a
    # taken fresh from the cell type
    assert daughter.stiffness_apical_apical == config.cell_type("emt").stiffness_apical_apical


def test_phase_boundaries():
    config = SimulationConfig()
    cell = Cell(id=0, type_name="control", cell_type=config.cell_type("control"), division_time=10.0)
    assert update_cell_phase(cell, 8.9) == CellPhase.G1
    assert update_cell_phase(cell, 9.0) == CellPhase.G2
    assert update_cell_phase(cell, 9.4) == CellPhase.G2
    assert update_cell_phase(cell, 9.5) == CellPhase.MITOSIS
    assert update_cell_phase(cell, 10.0) == CellPhase.DIVISION


def test_reset_in_place_keeps_identity():
    config = SimulationConfig()
    state = _line_state(t=20.0)
    rng = DeterministicRng(8)
    cell = create_cell(config, state, rng, Vec2(0.0, 2.0), "control")
    cell.phase = CellPhase.DIVISION
    cell.r_hard = 0.7
    reset_cell_in_place(state, rng, cell)
    assert cell.id == 0
    assert cell.phase == CellPhase.G1
    assert cell.birth_time == 20.0
    assert cell.division_time > 20.0
    assert cell.r_hard == config.cell_type("control").r_hard
