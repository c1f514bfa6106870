"""A* pathfinding on the storage lattice."""

from __future__ import annotations

import heapq
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .ledger import OccupancyLedger
    from .models import Coord

DIRECTIONS: tuple[tuple[int, int], ...] = ((1, 0), (-1, 0), (0, 1), (0, -1))


def manhattan(a: Coord, b: Coord) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def astar(
    start: Coord,
    goal: Coord,
    vehicle_id: int,
    ledger: OccupancyLedger,
) -> list[Coord] | None:
    """A* over the 4-connected grid with unit step cost and Manhattan heuristic.

    Cells the *ledger* reports as blocked for *vehicle_id* are skipped, except
    *goal*, which is always enterable. Returns ``(x, z)`` cells from *start* to
    *goal* inclusive, or ``None`` if no path exists.
    """
    metrics = ledger.metrics
    if not metrics.in_bounds(start) or not metrics.in_bounds(goal):
        return None

    counter = 0
    open_set: list[tuple[int, int, Coord]] = [(manhattan(start, goal), counter, start)]
    came_from: dict[Coord, Coord] = {}
    g_score: dict[Coord, int] = {start: 0}
    closed: set[Coord] = set()

    while open_set:
        _, _, current = heapq.heappop(open_set)

        if current == goal:
            path: list[Coord] = [current]
            while current in came_from:
                current = came_from[current]
                path.append(current)
            path.reverse()
            return path

        if current in closed:
            continue
        closed.add(current)

        for dx, dz in DIRECTIONS:
            neighbor = (current[0] + dx, current[1] + dz)
            if neighbor in closed:
                continue
            if neighbor != goal and ledger.is_blocked(neighbor, vehicle_id):
                continue
            if not metrics.in_bounds(neighbor):
                continue
            tentative_g = g_score[current] + 1
            if tentative_g < g_score.get(neighbor, 1 << 30):
                came_from[neighbor] = current
                g_score[neighbor] = tentative_g
                counter += 1
                heapq.heappush(open_set, (tentative_g + manhattan(neighbor, goal), counter, neighbor))

    return None
