"""Fleet: owns vehicles, ledger, resolver and tasks, and drives them tick by tick."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable

from .enums import CollisionMode, ErrorKind, VehicleState
from .constants import (
    DEFAULT_SPEED, MAX_WAIT_TIME, DEADLOCK_CHECK_INTERVAL,
    CARGO_PRIORITY_BOOST, UNLOAD_FACING,
)
from .grid import GridMetrics, destination_id, parse_destination
from .ledger import OccupancyLedger
from .models import Cargo, Coord, Outcome
from .pathfinding import astar
from .resolver import CollisionResolver
from .tasks import TaskCoordinator
from .vehicle import Vehicle

logger = logging.getLogger(__name__)


def default_vehicle_configs(metrics: GridMetrics) -> list[dict]:
    """Two vehicles at the front corners of the grid, the right one with priority."""
    return [
        {"name": "Vehicle 1", "start": (0, 0), "priority": 1},
        {"name": "Vehicle 2", "start": (metrics.width - 1, 0), "priority": 2},
    ]


class Fleet:
    """Coordination engine for every vehicle on one grid.

    All state lives on this object; nothing is module-global. Call
    :meth:`initialize` once, then :meth:`tick` once per frame.
    """

    def __init__(
        self,
        speed: float = DEFAULT_SPEED,
        collision_mode: CollisionMode | str = CollisionMode.ADVANCED,
        max_wait_time: float = MAX_WAIT_TIME,
        deadlock_check_interval: float = DEADLOCK_CHECK_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.speed: float = speed
        self.vehicles: list[Vehicle] = []
        self.metrics: GridMetrics | None = None
        self.ledger: OccupancyLedger | None = None
        self.resolver: CollisionResolver = CollisionResolver(
            CollisionMode(collision_mode), max_wait_time, deadlock_check_interval,
        )
        self.task_coordinator: TaskCoordinator = TaskCoordinator()
        self.cargo_store: dict[Coord, list[Cargo]] = {}
        self.sim_elapsed: float = 0.0
        self.total_ticks: int = 0
        self._clock: Callable[[], float] = clock
        self._by_id: dict[int, Vehicle] = {}

    # ------------------------------------------------------------
    # setup
    # ------------------------------------------------------------

    def initialize(
        self,
        vehicle_configs: list[dict] | None,
        grid_metrics: GridMetrics,
    ) -> list[dict]:
        """Create vehicles from *vehicle_configs* on *grid_metrics*.

        Each config is ``{"name": str, "start": (x, z), "priority": int}``.
        Returns ``[{"id": ..., "label": ...}, ...]``.
        """
        self.dispose()
        self.metrics = grid_metrics
        self.ledger = OccupancyLedger(grid_metrics)
        if vehicle_configs is None:
            vehicle_configs = default_vehicle_configs(grid_metrics)

        taken: set[Coord] = set()
        for index, config in enumerate(vehicle_configs, start=1):
            start = tuple(config.get("start", (0, 0)))
            if not grid_metrics.in_bounds(start):
                raise ValueError(f"Vehicle {index} starts outside the grid at {start}")
            if start in taken:
                raise ValueError(f"Vehicle {index} starts on occupied cell {start}")
            taken.add(start)
            vehicle = Vehicle(
                index,
                config.get("name") or f"Vehicle {index}",
                start,
                int(config.get("priority", 0)),
                grid_metrics,
            )
            self.vehicles.append(vehicle)
            self._by_id[vehicle.vehicle_id] = vehicle
            logger.info("%s ready at %s, priority %d", vehicle.name, start, vehicle.priority)

        self.ledger.rebuild_occupancy(self.vehicles)
        logger.info(
            "Fleet initialized: %d vehicles on %dx%d grid",
            len(self.vehicles), grid_metrics.width, grid_metrics.depth,
        )
        return self.get_car_options()

    def set_cargo(self, cargo_items: Iterable[Cargo]) -> None:
        """Register the cargo sitting on shelves, replacing any previous set."""
        self.cargo_store.clear()
        for cargo in cargo_items:
            cargo.carried_by = None
            self.cargo_store.setdefault(cargo.coord, []).append(cargo)
            if self.metrics is not None:
                cargo.position = self.metrics.shelf_position(cargo.coord, cargo.level)
        for stack in self.cargo_store.values():
            stack.sort(key=lambda c: c.level)

    def dispose(self) -> None:
        self.vehicles = []
        self._by_id.clear()
        if self.ledger is not None:
            self.ledger.clear()
        self.task_coordinator.clear()
        self.cargo_store.clear()
        self.resolver.reset()
        self.sim_elapsed = 0.0
        self.total_ticks = 0

    # ------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------

    def get_vehicle(self, vehicle_id: int) -> Vehicle | None:
        return self._by_id.get(vehicle_id)

    def get_car_options(self) -> list[dict]:
        return [{"id": v.vehicle_id, "label": v.name} for v in self.vehicles]

    def get_destination_options(self) -> list[dict]:
        if self.metrics is None:
            return []
        return [
            {"id": destination_id(cell), "label": f"X{cell[0] + 1} - Z{cell[1] + 1}"}
            for cell in self.metrics.cells()
        ]

    def is_car_ready(self, vehicle_id: int) -> bool:
        vehicle = self._by_id.get(vehicle_id)
        return vehicle is not None and vehicle.is_ready_for_action()

    def has_cargo(self, vehicle_id: int) -> bool:
        vehicle = self._by_id.get(vehicle_id)
        return vehicle is not None and vehicle.cargo is not None

    def stack_at(self, coord: Coord) -> list[Cargo]:
        return list(self.cargo_store.get(coord, []))

    # ------------------------------------------------------------
    # commands
    # ------------------------------------------------------------

    @property
    def collision_mode(self) -> CollisionMode:
        return self.resolver.mode

    def set_collision_mode(self, mode: CollisionMode | str) -> Outcome:
        try:
            new_mode = CollisionMode(mode)
        except ValueError:
            logger.warning("Unknown collision mode %r, keeping %s", mode, self.resolver.mode.value)
            return Outcome.fail(ErrorKind.INVALID_COLLISION_MODE, f"Unknown collision mode {mode!r}")
        self.resolver.mode = new_mode
        logger.info("Collision mode: %s", new_mode.value)
        return Outcome.ok(f"Collision mode set to {new_mode.value}")

    def set_priority(self, vehicle_id: int, priority: int) -> Outcome:
        vehicle = self._by_id.get(vehicle_id)
        if vehicle is None:
            return Outcome.fail(ErrorKind.VEHICLE_NOT_FOUND, f"Vehicle {vehicle_id} not found")
        vehicle.priority = int(priority)
        logger.info("%s priority set to %d", vehicle.name, vehicle.priority)
        return Outcome.ok(f"{vehicle.name} priority set to {vehicle.priority}")

    def set_speed(self, speed: float) -> None:
        self.speed = max(0.0, float(speed))

    def set_destination(self, vehicle_id: int, destination: str) -> Outcome:
        """Plan and reserve a route from the vehicle's cell to ``"x-z"`` *destination*."""
        vehicle = self._by_id.get(vehicle_id)
        if vehicle is None or self.metrics is None:
            return Outcome.fail(ErrorKind.VEHICLE_NOT_FOUND, f"Vehicle {vehicle_id} not found")

        target = parse_destination(destination)
        if target is None:
            return Outcome.fail(
                ErrorKind.INVALID_DESTINATION_FORMAT, f"Malformed destination {destination!r}",
            )
        if not self.metrics.in_bounds(target):
            return Outcome.fail(
                ErrorKind.DESTINATION_OUT_OF_BOUNDS, f"Destination {target} is outside the grid",
            )

        route = astar(vehicle.current_coord, target, vehicle_id, self.ledger)
        if route is None:
            return Outcome.fail(ErrorKind.PATH_NOT_FOUND, f"No path to {target} (blocked)")

        vehicle.assign_route(route, self.metrics, target)
        self.ledger.reserve_path(vehicle_id, route)
        logger.info("%s route to %s (%d steps)", vehicle.name, target, len(route))
        return Outcome.ok(f"{vehicle.name} route updated ({len(route)} steps)", steps=len(route))

    def pick_up_cargo(self, vehicle_id: int) -> Outcome:
        vehicle = self._by_id.get(vehicle_id)
        if vehicle is None:
            return Outcome.fail(ErrorKind.VEHICLE_NOT_FOUND, f"Vehicle {vehicle_id} not found")
        if not vehicle.is_ready_for_action():
            return Outcome.fail(ErrorKind.VEHICLE_NOT_READY, f"{vehicle.name} has not arrived yet")
        if vehicle.cargo is not None:
            return Outcome.fail(ErrorKind.CARGO_ALREADY_LOADED, f"{vehicle.name} is already loaded")

        stack = self.cargo_store.get(vehicle.current_coord)
        if not stack:
            return Outcome.fail(ErrorKind.CARGO_ABSENT, f"No cargo at {vehicle.current_coord}")

        cargo = stack.pop()
        if not stack:
            del self.cargo_store[vehicle.current_coord]
        cargo.carried_by = vehicle.vehicle_id
        cargo.coord = vehicle.current_coord
        cargo.position = vehicle.position
        vehicle.cargo = cargo
        vehicle.has_cargo_task = True
        vehicle.priority += CARGO_PRIORITY_BOOST
        logger.info("%s picked up %s at %s", vehicle.name, cargo.name, vehicle.current_coord)
        return Outcome.ok(f"{vehicle.name} picked up {cargo.name}", cargo_id=cargo.cargo_id)

    def drop_cargo(self, vehicle_id: int) -> Outcome:
        vehicle = self._by_id.get(vehicle_id)
        if vehicle is None or self.metrics is None:
            return Outcome.fail(ErrorKind.VEHICLE_NOT_FOUND, f"Vehicle {vehicle_id} not found")
        if vehicle.cargo is None:
            return Outcome.fail(ErrorKind.CARGO_ABSENT, f"{vehicle.name} carries nothing")
        if not vehicle.is_ready_for_action():
            return Outcome.fail(ErrorKind.VEHICLE_NOT_READY, f"{vehicle.name} has not arrived yet")

        coord = vehicle.current_coord
        stack = self.cargo_store.get(coord, [])
        next_level = stack[-1].level + 1 if stack else 0
        if next_level >= self.metrics.height + 1:
            return Outcome.fail(
                ErrorKind.STACK_HEIGHT_EXCEEDED, f"Stack at {coord} is full ({len(stack)} items)",
            )

        cargo = vehicle.cargo
        vehicle.cargo = None
        vehicle.has_cargo_task = False
        vehicle.priority = max(0, vehicle.priority - CARGO_PRIORITY_BOOST)
        cargo.carried_by = None
        cargo.coord = coord
        cargo.level = next_level
        cargo.position = self.metrics.shelf_position(coord, next_level)
        self.cargo_store.setdefault(coord, []).append(cargo)
        logger.info("%s dropped %s at %s level %d", vehicle.name, cargo.name, coord, next_level)
        return Outcome.ok(f"{vehicle.name} dropped {cargo.name}", cargo_id=cargo.cargo_id)

    # ------------------------------------------------------------
    # collaborative tasks
    # ------------------------------------------------------------

    def create_collaborative_task(
        self,
        vehicle_ids: list[int],
        target_coord: Coord,
        task_type: str = "pickup",
    ) -> Outcome:
        if self.metrics is None:
            return Outcome.fail(ErrorKind.NOT_INITIALIZED, "Fleet is not initialized")
        return self.task_coordinator.create(self, vehicle_ids, target_coord, task_type, self._clock())

    def execute_collaborative_task(self, task_id: str) -> Outcome:
        return self.task_coordinator.execute(self, task_id)

    def complete_collaborative_task(self, task_id: str) -> Outcome:
        return self.task_coordinator.complete(self, task_id)

    def cancel_collaborative_task(self, task_id: str) -> Outcome:
        return self.task_coordinator.cancel(self, task_id)

    def get_all_collaborative_tasks(self) -> list[dict]:
        return self.task_coordinator.all_tasks()

    # ------------------------------------------------------------
    # tick
    # ------------------------------------------------------------

    def tick(self, dt: float) -> None:
        """Advance every vehicle by *dt* seconds.

        Occupancy is snapshotted once up front; vehicles later in the list see
        earlier vehicles at their pre-tick cells.
        """
        if not self.vehicles:
            return
        now = self._clock()
        self.sim_elapsed += dt
        self.total_ticks += 1

        self.ledger.rebuild_occupancy(self.vehicles)
        if self.resolver.mode == CollisionMode.ADVANCED:
            self.resolver.detect_and_resolve_deadlock(self, now)

        for vehicle in self.vehicles:
            vehicle.heading = UNLOAD_FACING
            occupier = vehicle.update(dt, self.speed, self.ledger, now)
            if occupier is not None:
                self.resolver.handle_blocked(self, vehicle, occupier, now)
                continue
            if vehicle.arrive_if_done(self.ledger) and vehicle.task_id is not None:
                self.task_coordinator.check_progress(self, vehicle.task_id)

    # ------------------------------------------------------------
    # diagnostics
    # ------------------------------------------------------------

    def get_car_status(self, vehicle_id: int) -> dict | None:
        vehicle = self._by_id.get(vehicle_id)
        if vehicle is None:
            return None
        return {
            "id": vehicle.vehicle_id,
            "name": vehicle.name,
            "state": vehicle.state.value,
            "current_coord": vehicle.current_coord,
            "target_coord": vehicle.target_coord,
            "position": vehicle.position,
            "is_waiting": vehicle.is_waiting,
            "wait_reason": vehicle.wait_reason,
            "blocked_by": vehicle.blocked_by,
            "priority": vehicle.priority,
            "has_cargo": vehicle.cargo is not None,
            "path_length": len(vehicle.path),
            "path_index": vehicle.path_index,
            "task_id": vehicle.task_id,
            "task_role": vehicle.task_role.value if vehicle.task_role else None,
        }

    def get_all_car_status(self) -> list[dict]:
        return [self.get_car_status(v.vehicle_id) for v in self.vehicles]

    def get_system_status(self) -> dict:
        states = [v.state for v in self.vehicles]
        return {
            "collision_mode": self.resolver.mode.value,
            "total_cars": len(self.vehicles),
            "active_tasks": len(self.task_coordinator.tasks),
            "waiting_cars": states.count(VehicleState.WAITING),
            "moving_cars": states.count(VehicleState.MOVING),
            "idle_cars": states.count(VehicleState.IDLE),
            "deadlocks_resolved": self.resolver.deadlocks_resolved,
            "forced_yields": self.resolver.forced_yields,
            "replans": self.resolver.replans,
            "sim_elapsed": self.sim_elapsed,
        }
