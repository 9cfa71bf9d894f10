from __future__ import annotations

from dataclasses import dataclass
from typing import List

from ..core.cell import Cell, SimulationState
from ..core.config import SimulationConfig
from ..utils.vector import ZERO, Vec2

_MIN_LENGTH = 1e-12
_MIN_JUNCTION_LENGTH = 1e-6
APICAL_JUNCTION_SCALE = 0.25


@dataclass(slots=True)
class CellForces:
    nucleus: Vec2 = ZERO
    apical: Vec2 = ZERO
    basal: Vec2 = ZERO


def compute_forces(state: SimulationState, config: SimulationConfig) -> List[CellForces]:
    forces = [CellForces() for _ in state.cells]
    add_repulsion_forces(state.cells, forces)
    hard_sphere = config.general.hard_sphere_nuclei
    for cell, force in zip(state.cells, forces):
        add_apical_spring_force(cell, force, hard_sphere)
        add_basal_spring_force(cell, force, hard_sphere)
        add_straightness_force(cell, force)
    add_apical_junction_forces(state, forces)
    return forces


def add_repulsion_forces(cells: List[Cell], forces: List[CellForces]) -> None:
    for i in range(len(cells)):
        ci = cells[i]
        xi = ci.nucleus
        for j in range(i):
            cj = cells[j]
            radius = ci.r_soft + cj.r_soft
            if abs(cj.nucleus.x - xi.x) >= radius:
                continue
            offset = cj.nucleus - xi
            distance = offset.length()
            if not radius / 20.0 < distance < radius:
                continue
            stiffness = ci.cell_type.stiffness_repulsion + cj.cell_type.stiffness_repulsion
            force = offset * (-stiffness * (radius - distance) / (distance * radius * radius))
            forces[i].nucleus = forces[i].nucleus + force
            forces[j].nucleus = forces[j].nucleus - force


def _nucleus_radius(cell: Cell, hard_sphere: bool) -> float:
    return cell.r_hard if hard_sphere else cell.r_soft


def _spring(offset: Vec2, rest_length: float, stiffness: float) -> Vec2:
    length = offset.length()
    if length < _MIN_LENGTH or rest_length <= 0:
        return ZERO
    return offset * (2.0 * stiffness * (length - rest_length) / (length * rest_length * rest_length))


def add_apical_spring_force(cell: Cell, force: CellForces, hard_sphere: bool) -> None:
    rest_length = cell.eta_a + _nucleus_radius(cell, hard_sphere)
    pull = _spring(cell.nucleus - cell.apical, rest_length, cell.stiffness_nuclei_apical)
    force.nucleus = force.nucleus - pull
    force.apical = force.apical + pull


def add_basal_spring_force(cell: Cell, force: CellForces, hard_sphere: bool) -> None:
    rest_length = cell.eta_b + _nucleus_radius(cell, hard_sphere)
    pull = _spring(cell.nucleus - cell.basal, rest_length, cell.stiffness_nuclei_basal)
    force.nucleus = force.nucleus - pull
    force.basal = force.basal + pull


def add_straightness_force(cell: Cell, force: CellForces) -> None:
    """Push apical point, nucleus and basal point toward a straight line."""
    to_apical = cell.nucleus - cell.apical
    to_basal = cell.nucleus - cell.basal
    len_a = to_apical.length()
    len_b = to_basal.length()
    if len_a < _MIN_LENGTH or len_b < _MIN_LENGTH:
        return
    scale = cell.stiffness_straightness / (len_a * len_b)
    alignment = Vec2.dot(to_apical, to_basal)
    d_apical = (-to_basal + to_apical * (alignment / (len_a * len_a))) * scale
    d_basal = (-to_apical + to_basal * (alignment / (len_b * len_b))) * scale
    force.apical = force.apical - d_apical
    force.nucleus = force.nucleus + d_apical + d_basal
    force.basal = force.basal - d_basal


def add_apical_junction_forces(state: SimulationState, forces: List[CellForces]) -> None:
    cells = state.cells
    for link in state.apical_links:
        left = cells[link.left]
        right = cells[link.right]
        if not (left.has_apical and right.has_apical):
            continue
        offset = left.apical - right.apical
        distance = offset.length()
        if distance <= _MIN_JUNCTION_LENGTH:
            continue
        stiffness = 0.5 * (left.stiffness_apical_apical + right.stiffness_apical_apical)
        force = offset * (APICAL_JUNCTION_SCALE * stiffness * (distance - link.rest_length) / distance)
        forces[link.left].apical = forces[link.left].apical - force
        forces[link.right].apical = forces[link.right].apical + force
