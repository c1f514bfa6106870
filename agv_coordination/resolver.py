"""Collision resolution: priority yielding, wait escalation and deadlock breaking."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .enums import CollisionMode
from .constants import MAX_WAIT_TIME, DEADLOCK_CHECK_INTERVAL
from .pathfinding import astar

if TYPE_CHECKING:
    from .fleet import Fleet
    from .vehicle import Vehicle

logger = logging.getLogger(__name__)


def find_cycle(wait_graph: dict[int, int]) -> list[int] | None:
    """Return the vehicle ids forming a cycle in *wait_graph*, or ``None``.

    *wait_graph* maps each waiting vehicle to the vehicle blocking it. Depth-first
    from every node, tracking the current recursion stack; reaching a node that
    is still on the stack closes a cycle.
    """
    visited: set[int] = set()

    for start in wait_graph:
        if start in visited:
            continue
        stack: list[int] = []
        on_stack: set[int] = set()
        node: int | None = start
        while node is not None and node not in visited:
            visited.add(node)
            stack.append(node)
            on_stack.add(node)
            nxt = wait_graph.get(node)
            if nxt is not None and nxt in on_stack:
                return stack[stack.index(nxt):]
            node = nxt
    return None


class CollisionResolver:
    """Decides what a blocked vehicle does, and breaks circular waits."""

    def __init__(
        self,
        mode: CollisionMode = CollisionMode.ADVANCED,
        max_wait_time: float = MAX_WAIT_TIME,
        deadlock_check_interval: float = DEADLOCK_CHECK_INTERVAL,
    ) -> None:
        self.mode: CollisionMode = mode
        self.max_wait_time: float = max_wait_time
        self.deadlock_check_interval: float = deadlock_check_interval
        self.last_deadlock_check: float | None = None
        self.deadlocks_resolved: int = 0
        self.forced_yields: int = 0
        self.replans: int = 0

    def reset(self) -> None:
        self.last_deadlock_check = None
        self.deadlocks_resolved = 0
        self.forced_yields = 0
        self.replans = 0

    # --- per-vehicle blocking ---

    def handle_blocked(self, fleet: Fleet, vehicle: Vehicle, occupier_id: int, now: float) -> None:
        """Escalate a wait that has outlasted ``max_wait_time`` (advanced mode only)."""
        if self.mode == CollisionMode.SIMPLE:
            return
        if now - vehicle.wait_start_time <= self.max_wait_time:
            return

        occupier = fleet.get_vehicle(occupier_id)
        if (
            occupier is not None
            and vehicle.priority > occupier.priority
            and not occupier.has_cargo_task
        ):
            logger.info(
                "%s waited %.1fs with higher priority, asking %s to yield",
                vehicle.name, now - vehicle.wait_start_time, occupier.name,
            )
            self.move_to_safe_position(fleet, occupier)
            self.forced_yields += 1
            vehicle.wait_start_time = now
            return

        if vehicle.target_coord is None:
            return

        logger.info("%s wait timed out, replanning to %s", vehicle.name, vehicle.target_coord)
        route = astar(vehicle.current_coord, vehicle.target_coord, vehicle.vehicle_id, fleet.ledger)
        if route and len(route) > 1:
            vehicle.assign_route(route, fleet.metrics, vehicle.target_coord)
            fleet.ledger.reserve_path(vehicle.vehicle_id, route)
            self.replans += 1
        else:
            logger.debug("%s replanning failed, extending wait", vehicle.name)
            vehicle.wait_start_time = now

    # --- deadlock ---

    def detect_and_resolve_deadlock(self, fleet: Fleet, now: float) -> bool:
        """Scan the wait graph at most once per interval. Returns ``True`` if a deadlock was broken."""
        if self.mode == CollisionMode.SIMPLE:
            return False
        if (
            self.last_deadlock_check is not None
            and now - self.last_deadlock_check < self.deadlock_check_interval
        ):
            return False
        self.last_deadlock_check = now

        waiting = [v for v in fleet.vehicles if v.is_waiting]
        if len(waiting) < 2:
            return False

        wait_graph: dict[int, int] = {
            v.vehicle_id: v.blocked_by for v in waiting if v.blocked_by is not None
        }
        cycle = find_cycle(wait_graph)
        if cycle is None:
            return False

        logger.warning(
            "Deadlock detected: %s",
            " -> ".join(str(vid) for vid in cycle + cycle[:1]),
        )
        self.resolve_deadlock(fleet, wait_graph)
        return True

    def resolve_deadlock(self, fleet: Fleet, wait_graph: dict[int, int]) -> Vehicle | None:
        """Make the lowest-priority vehicle on any wait edge yield."""
        involved = set(wait_graph) | set(wait_graph.values())
        lowest: Vehicle | None = None
        for vehicle in fleet.vehicles:
            if vehicle.vehicle_id not in involved:
                continue
            if lowest is None or vehicle.priority < lowest.priority:
                lowest = vehicle
        if lowest is None:
            return None
        logger.info("%s (priority %d) yields to break the deadlock", lowest.name, lowest.priority)
        self.move_to_safe_position(fleet, lowest)
        self.deadlocks_resolved += 1
        return lowest

    # --- yield ---

    def move_to_safe_position(self, fleet: Fleet, vehicle: Vehicle) -> bool:
        """Abandon *vehicle*'s goal and send it to the first free cell it can reach.

        Cells are tried in row-major order. With no reachable free cell the
        vehicle stops where it is. Returns ``True`` if a new route was assigned.
        """
        ledger = fleet.ledger
        # Live cells, since the occupancy snapshot lags moves made this tick
        standing = {v.current_coord for v in fleet.vehicles}
        for cell in fleet.metrics.cells():
            if cell in standing or not ledger.is_free(cell):
                continue
            route = astar(vehicle.current_coord, cell, vehicle.vehicle_id, ledger)
            if not route:
                continue
            vehicle.assign_route(route, fleet.metrics, None)
            ledger.reserve_path(vehicle.vehicle_id, route)
            logger.info("%s moving to safe position %s", vehicle.name, cell)
            return True

        vehicle.clear_route()
        ledger.release_reservation(vehicle.vehicle_id)
        logger.warning("%s found no safe position, stopping", vehicle.name)
        return False
