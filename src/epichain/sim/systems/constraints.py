from __future__ import annotations

from ..core.cell import SimulationState
from ..core.config import SimulationConfig

ORDERING_EPSILON = 1e-6


def project_hard_sphere_constraints(state: SimulationState) -> None:
    """Separate overlapping nuclei by moving each half the penetration depth."""
    cells = state.cells
    for i in range(len(cells)):
        ci = cells[i]
        for j in range(i):
            cj = cells[j]
            radius = ci.r_hard + cj.r_hard
            if abs(ci.nucleus.x - cj.nucleus.x) >= radius:
                continue
            offset = ci.nucleus - cj.nucleus
            distance = offset.length()
            if distance >= radius or distance <= 0.0:
                continue
            correction = offset * (0.5 * (distance - radius) / distance)
            ci.nucleus = ci.nucleus - correction
            cj.nucleus = cj.nucleus + correction


def project_basal_ordering_constraints(state: SimulationState) -> None:
    """Keep the right end of every basal link strictly ahead along the curve."""
    cells = state.cells
    geometry = state.geometry
    for link in state.basal_links:
        left = cells[link.left]
        right = cells[link.right]
        if not (left.has_basal and right.has_basal):
            continue
        arc_left = geometry.arc_length(left.basal)
        arc_right = geometry.arc_length(right.basal)
        delta = geometry.wrap_arc_delta(arc_right - arc_left)
        if delta > 0:
            continue
        shift = -0.5 * delta + ORDERING_EPSILON
        left.basal = geometry.point_at_arc_length(arc_left - shift)
        right.basal = geometry.point_at_arc_length(arc_left + delta + shift)


def project_max_basal_distance_constraints(state: SimulationState) -> None:
    cells = state.cells
    geometry = state.geometry
    for link in state.basal_links:
        left = cells[link.left]
        right = cells[link.right]
        if not (left.has_basal and right.has_basal):
            continue
        limit = 0.5 * (
            left.cell_type.max_basal_junction_dist + right.cell_type.max_basal_junction_dist
        )
        arc_left = geometry.arc_length(left.basal)
        arc_right = geometry.arc_length(right.basal)
        delta = geometry.wrap_arc_delta(arc_right - arc_left)
        separation = abs(delta)
        if separation <= limit:
            continue
        half_excess = 0.5 * (separation - limit)
        step = half_excess if delta > 0 else -half_excess
        left.basal = geometry.point_at_arc_length(arc_left + step)
        right.basal = geometry.point_at_arc_length(arc_left + delta - step)


def project_basal_curve_constraints(state: SimulationState) -> None:
    geometry = state.geometry
    for cell in state.cells:
        if cell.has_basal:
            cell.basal = geometry.project(cell.basal)


def apply_all_constraints(state: SimulationState, config: SimulationConfig) -> None:
    if config.general.hard_sphere_nuclei:
        project_hard_sphere_constraints(state)
    project_basal_ordering_constraints(state)
    project_max_basal_distance_constraints(state)
    project_basal_curve_constraints(state)
