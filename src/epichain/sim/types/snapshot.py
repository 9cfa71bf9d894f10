from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.cell import ApicalLink, BasalLink, Cell, SimulationState
from ..core.rng import Seed


@dataclass(frozen=True)
class BatchSnapshot:
    """Immutable per-cell record of one simulation at one sampled time."""

    run_index: int
    seed: Seed
    time: float
    sampled_params: Dict[str, float] = field(default_factory=dict)
    rows: Tuple[Dict[str, Any], ...] = ()

    @property
    def cell_count(self) -> int:
        return len(self.rows)


def _neighbor_ids(cells: List[Cell], links: Sequence[ApicalLink] | Sequence[BasalLink]) -> List[List[int]]:
    neighbors: List[List[int]] = [[] for _ in cells]
    for link in links:
        neighbors[link.left].append(cells[link.right].id)
        neighbors[link.right].append(cells[link.left].id)
    return neighbors


def cell_row(cell: Cell, t: float, apical_neighbors: List[int], basal_neighbors: List[int]) -> Dict[str, Any]:
    return {
        "id": cell.id,
        "type": cell.type_name,
        "phase": int(cell.phase),
        "age": cell.age(t),
        "nucleus_x": cell.nucleus.x,
        "nucleus_y": cell.nucleus.y,
        "apical_x": cell.apical.x,
        "apical_y": cell.apical.y,
        "basal_x": cell.basal.x,
        "basal_y": cell.basal.y,
        "has_apical": cell.has_apical,
        "has_basal": cell.has_basal,
        "is_running": cell.is_running,
        "eta_a": cell.eta_a,
        "eta_b": cell.eta_b,
        "apical_neighbors": ";".join(str(n) for n in apical_neighbors),
        "basal_neighbors": ";".join(str(n) for n in basal_neighbors),
    }


def snapshot_from_state(
    state: SimulationState,
    run_index: int = 0,
    seed: Seed = 0,
    sampled_params: Optional[Dict[str, float]] = None,
    time: Optional[float] = None,
) -> BatchSnapshot:
    apical = _neighbor_ids(state.cells, state.apical_links)
    basal = _neighbor_ids(state.cells, state.basal_links)
    rows = tuple(
        cell_row(cell, state.t, apical[index], basal[index]) for index, cell in enumerate(state.cells)
    )
    return BatchSnapshot(
        run_index=run_index,
        seed=seed,
        time=state.t if time is None else time,
        sampled_params=dict(sampled_params or {}),
        rows=rows,
    )
