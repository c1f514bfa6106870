"""Vehicle: a grid-bound agent that follows a reserved route."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from .enums import TaskRole, VehicleState
from .constants import ARRIVAL_TOLERANCE, UNLOAD_FACING
from .models import Waypoint

if TYPE_CHECKING:
    from .grid import GridMetrics
    from .ledger import OccupancyLedger
    from .models import Cargo, Coord, Vec3

logger = logging.getLogger(__name__)


class Vehicle:
    """A vehicle moving cell to cell along its planned path."""

    def __init__(
        self,
        vehicle_id: int,
        name: str,
        start: Coord,
        priority: int,
        metrics: GridMetrics,
    ) -> None:
        self.vehicle_id: int = vehicle_id
        self.name: str = name
        self.priority: int = priority
        self.current_coord: Coord = start
        self.heading: Vec3 = UNLOAD_FACING
        self.position: Vec3 = metrics.cargo_aligned_position(start, UNLOAD_FACING)
        self.path: list[Waypoint] = []
        self.path_index: int = 0
        self.path_cost: int = 0
        self.target_coord: Coord | None = None
        self.cargo: Cargo | None = None
        self.has_cargo_task: bool = False
        self.task_id: str | None = None
        self.task_role: TaskRole | None = None
        self.is_waiting: bool = False
        self.wait_start_time: float = 0.0
        self.wait_reason: str | None = None
        self.blocked_by: int | None = None

    def __repr__(self) -> str:
        return f"Vehicle({self.vehicle_id}, {self.name!r}, {self.current_coord})"

    @property
    def state(self) -> VehicleState:
        if not self.path:
            return VehicleState.IDLE
        if self.is_waiting:
            return VehicleState.WAITING
        return VehicleState.MOVING

    # --- route management ---

    def assign_route(
        self,
        coords: list[Coord],
        metrics: GridMetrics,
        target: Coord | None,
    ) -> None:
        """Replace the current path with waypoints for *coords*."""
        heading = self.heading
        self.path = [
            Waypoint(coord, heading, metrics.cargo_aligned_position(coord, heading))
            for coord in coords
        ]
        self.path_index = 0
        self.path_cost = len(coords)
        self.target_coord = target
        self.heading = UNLOAD_FACING
        self.stop_waiting()

    def clear_route(self) -> None:
        self.path = []
        self.path_index = 0
        self.target_coord = None
        self.stop_waiting()

    def remaining_coords(self) -> list[Coord]:
        return [wp.coord for wp in self.path[self.path_index:]]

    def is_ready_for_action(self) -> bool:
        """``True`` when the vehicle is stationary at its cell."""
        if not self.path:
            return True
        if self.path_index == len(self.path) - 1:
            return math.dist(self.position, self.path[-1].position) < ARRIVAL_TOLERANCE
        return False

    # --- wait state ---

    def start_waiting(self, blocker_id: int, now: float) -> None:
        if self.is_waiting and self.blocked_by == blocker_id:
            return
        coord = self.path[self.path_index].coord
        if not self.is_waiting:
            self.wait_start_time = now
        self.is_waiting = True
        self.blocked_by = blocker_id
        self.wait_reason = f"blocked by vehicle {blocker_id} at {coord}"
        logger.info(
            "%s (priority %d) waiting for vehicle %d to leave %s",
            self.name, self.priority, blocker_id, coord,
        )

    def stop_waiting(self) -> None:
        self.is_waiting = False
        self.blocked_by = None
        self.wait_reason = None

    # --- motion ---

    def update(
        self,
        dt: float,
        speed: float,
        ledger: OccupancyLedger,
        now: float,
    ) -> int | None:
        """Advance up to ``speed * dt`` along the path.

        Stops in front of a cell another vehicle occupies in the ledger's
        snapshot and returns that vehicle's id; returns ``None`` otherwise.
        """
        if not self.path:
            self.stop_waiting()
            return None

        remaining = speed * dt
        while remaining > 0 and self.path:
            waypoint = self.path[self.path_index]

            occupier = ledger.occupant(waypoint.coord)
            if occupier is not None and occupier != self.vehicle_id:
                self.start_waiting(occupier, now)
                self._carry_cargo()
                return occupier

            if self.is_waiting:
                self.stop_waiting()
                logger.info("%s moving again", self.name)

            distance = math.dist(self.position, waypoint.position)
            if distance <= remaining:
                self.position = waypoint.position
                self.current_coord = waypoint.coord
                remaining -= distance
                if self.path_index < len(self.path) - 1:
                    # The cell just reached stays claimed until the vehicle leaves it
                    if self.path_index > 0:
                        ledger.release_cell(self.vehicle_id, self.path[self.path_index - 1].coord)
                    self.path_index += 1
                else:
                    remaining = 0
            else:
                t = remaining / distance
                px, py, pz = self.position
                wx, wy, wz = waypoint.position
                self.position = (px + (wx - px) * t, py + (wy - py) * t, pz + (wz - pz) * t)
                remaining = 0

        self._carry_cargo()
        return None

    def arrive_if_done(self, ledger: OccupancyLedger) -> bool:
        """Collapse a finished path back to idle. Returns ``True`` on arrival."""
        if not self.path or self.path_index != len(self.path) - 1:
            return False
        if math.dist(self.position, self.path[-1].position) >= ARRIVAL_TOLERANCE:
            return False
        self.position = self.path[-1].position
        self.current_coord = self.path[-1].coord
        self.clear_route()
        self.heading = UNLOAD_FACING
        ledger.release_reservation(self.vehicle_id)
        self._carry_cargo()
        logger.info("%s arrived at %s", self.name, self.current_coord)
        return True

    def _carry_cargo(self) -> None:
        if self.cargo is not None:
            self.cargo.coord = self.current_coord
            self.cargo.position = self.position
