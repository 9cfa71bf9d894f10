from __future__ import annotations

import math

import pytest
from pytest import approx

from epichain.sim.core.cell import Cell, SimulationState
from epichain.sim.core.config import SimulationConfig
from epichain.sim.core.geometry import StraightLineGeometry
from epichain.sim.systems.events import apply_cell_events, process_emt_events, update_running_state
from epichain.sim.utils.vector import Vec2


def _make_cell(config: SimulationConfig, **overrides) -> Cell:
    cell_type = config.cell_type("emt")
    cell = Cell(
        id=0,
        type_name="emt",
        cell_type=cell_type,
        nucleus=Vec2(0.0, 2.0),
        apical=Vec2(0.0, 4.0),
        basal=Vec2(0.0, 0.0),
        stiffness_straightness=cell_type.stiffness_straightness,
        stiffness_nuclei_apical=cell_type.stiffness_nuclei_apical,
        stiffness_nuclei_basal=cell_type.stiffness_nuclei_basal,
    )
    for key, value in overrides.items():
        setattr(cell, key, value)
    return cell


def test_apical_loss_fires_once():
    config = SimulationConfig()
    cell = _make_cell(config, time_a=1.05)
    apply_cell_events(cell, 0.9, 0.1)
    assert cell.has_apical
    apply_cell_events(cell, 1.0, 0.1)
    assert not cell.has_apical
    assert cell.stiffness_nuclei_apical == approx(0.3)
    apply_cell_events(cell, 1.1, 0.1)
    assert cell.stiffness_nuclei_apical == approx(0.3)


def test_basal_and_straightness_events():
    config = SimulationConfig()
    cell = _make_cell(config, time_b=2.0, time_s=2.04)
    apply_cell_events(cell, 2.0, 0.1)
    assert not cell.has_basal
    assert cell.stiffness_nuclei_basal == approx(0.2)
    assert cell.stiffness_straightness == 1.0
    assert cell.has_apical


def test_running_onset_waits_for_basal_loss():
    config = SimulationConfig()
    cell = _make_cell(config, time_p=2.0, time_b=3.0)
    apply_cell_events(cell, 2.0, 0.1)
    assert cell.running_mode == 0
    apply_cell_events(cell, 3.0, 0.1)
    assert cell.running_mode == 3


def test_never_scheduled_events_do_not_fire():
    config = SimulationConfig()
    cell = _make_cell(config, time_a=math.inf, time_b=math.inf, time_s=math.inf, time_p=math.inf)
    apply_cell_events(cell, 1e9, 1e9)
    assert cell.has_apical and cell.has_basal
    assert cell.running_mode == 0


@pytest.mark.parametrize(
    "basal_y, mode, expected",
    [
        (-1.0, 1, True),
        (1.0, 1, False),
        (1.0, 3, True),
        (-3.0, 3, False),
        (-1.0, 0, False),
    ],
)
def test_running_state_from_basal_height(basal_y, mode, expected):
    config = SimulationConfig()
    state = SimulationState(geometry=StraightLineGeometry())
    state.cells = [_make_cell(config, has_basal=False, running_mode=mode, basal=Vec2(0.0, basal_y))]
    update_running_state(state)
    assert state.cells[0].is_running is expected


def test_attached_cells_never_run():
    config = SimulationConfig()
    state = SimulationState(geometry=StraightLineGeometry(), t=5.0)
    state.cells = [_make_cell(config, running_mode=3, basal=Vec2(0.0, -1.0))]
    process_emt_events(state, 0.1)
    assert state.cells[0].is_running is False
