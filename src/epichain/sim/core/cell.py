from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List

from ..utils.vector import ZERO, Vec2
from .config import CellTypeConfig
from .geometry import BasalGeometry, StraightLineGeometry


class CellPhase(IntEnum):
    G1 = 0
    G2 = 1
    MITOSIS = 2
    DIVISION = 3


@dataclass(slots=True)
class Cell:
    id: int
    type_name: str
    cell_type: CellTypeConfig
    nucleus: Vec2 = ZERO
    apical: Vec2 = ZERO
    basal: Vec2 = ZERO
    r_soft: float = 1.2
    r_hard: float = 0.4
    eta_a: float = 0.0
    eta_b: float = 0.0
    has_apical: bool = True
    has_basal: bool = True
    is_running: bool = False
    running_mode: int = 0
    has_inm: bool = False
    phase: CellPhase = CellPhase.G1
    birth_time: float = 0.0
    division_time: float = math.inf
    time_a: float = math.inf
    time_b: float = math.inf
    time_s: float = math.inf
    time_p: float = math.inf
    stiffness_apical_apical: float = 0.0
    stiffness_straightness: float = 0.0
    stiffness_nuclei_apical: float = 0.0
    stiffness_nuclei_basal: float = 0.0

    def age(self, t: float) -> float:
        return t - self.birth_time

    def is_finite(self) -> bool:
        return self.nucleus.is_finite() and self.apical.is_finite() and self.basal.is_finite()


@dataclass(slots=True)
class ApicalLink:
    left: int
    right: int
    rest_length: float = 0.0


@dataclass(slots=True)
class BasalLink:
    left: int
    right: int


@dataclass(slots=True)
class SimulationState:
    """Mutable tissue state owned by a single engine."""

    cells: List[Cell] = field(default_factory=list)
    apical_links: List[ApicalLink] = field(default_factory=list)
    basal_links: List[BasalLink] = field(default_factory=list)
    t: float = 0.0
    step_count: int = 0
    geometry: BasalGeometry = field(default_factory=StraightLineGeometry)
    next_cell_id: int = 0
    divisions: int = 0

    def allocate_cell_id(self) -> int:
        cell_id = self.next_cell_id
        self.next_cell_id += 1
        return cell_id
