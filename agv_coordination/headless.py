"""Headless (no-GUI) simulation runner."""

from __future__ import annotations

import logging
import random
import time as _time
from typing import TYPE_CHECKING, Iterable

from .enums import CollisionMode, VehicleState
from .constants import TICK_DT
from .fleet import Fleet
from .grid import GridMetrics, destination_id
from .models import Cargo

if TYPE_CHECKING:
    from .models import Coord
    from .vehicle import Vehicle

logger = logging.getLogger(__name__)


class SimClock:
    """Simulation-time clock for :class:`Fleet`; advances only when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now: float = start

    def advance(self, dt: float) -> float:
        self.now += dt
        return self.now

    def __call__(self) -> float:
        return self.now


def _reset_id_counters() -> None:
    """Reset class-level ID counters so each headless run starts fresh."""
    Cargo._next_id = 1


def route_targets(vehicles: Iterable[Vehicle]) -> dict[int, Coord]:
    """Map each vehicle still driving to a goal onto that goal."""
    return {
        v.vehicle_id: v.target_coord
        for v in vehicles
        if v.path and v.target_coord is not None
    }


def count_arrivals(vehicles: Iterable[Vehicle], targets: dict[int, Coord]) -> int:
    """Count vehicles that finished their route on the goal recorded in *targets*.

    Routes cleared by a yield or a cancel end elsewhere or without a goal and
    are not counted.
    """
    return sum(
        1 for v in vehicles
        if v.vehicle_id in targets
        and not v.path
        and v.current_coord == targets[v.vehicle_id]
    )


def run_headless(
    num_vehicles: int = 4,
    num_cargo: int = 6,
    width: int = 8,
    depth: int = 6,
    height: int = 3,
    collision_mode: CollisionMode | str = CollisionMode.ADVANCED,
    sim_duration: float = 600.0,
    tick_dt: float = TICK_DT,
    seed: int | None = None,
) -> dict:
    """Shuttle cargo between random cells with a fixed timestep.

    Idle vehicles pick up cargo where they stand, drop what they carry, then
    head for a random cell. Returns a dict of run metrics.
    """
    _reset_id_counters()
    rng = random.Random(seed)
    wall_start = _time.monotonic()

    metrics = GridMetrics(width, depth, height)
    cells = list(metrics.cells())
    if num_vehicles > len(cells):
        raise ValueError(
            f"Cannot place {num_vehicles} vehicles on a {width}x{depth} grid "
            f"({len(cells)} cells)."
        )

    clock = SimClock()
    fleet = Fleet(collision_mode=collision_mode, clock=clock)
    starts = rng.sample(cells, num_vehicles)
    fleet.initialize(
        [
            {"name": f"Vehicle {i + 1}", "start": start, "priority": rng.randint(0, 5)}
            for i, start in enumerate(starts)
        ],
        metrics,
    )
    stack_heights: dict[tuple[int, int], int] = {}
    cargo_items: list[Cargo] = []
    for _ in range(num_cargo):
        cell = rng.choice(cells)
        level = stack_heights.get(cell, 0)
        if level > height:
            continue
        stack_heights[cell] = level + 1
        cargo_items.append(Cargo(cell, level))
    fleet.set_cargo(cargo_items)

    arrivals = 0
    pickups = 0
    drops = 0
    failed_plans = 0
    shared_cell_ticks = 0
    waiting_ticks = 0
    vehicle_ticks = 0
    sim_elapsed = 0.0

    while sim_elapsed < sim_duration:
        for vehicle in fleet.vehicles:
            if vehicle.path:
                continue
            if vehicle.cargo is not None:
                if fleet.drop_cargo(vehicle.vehicle_id):
                    drops += 1
            elif fleet.pick_up_cargo(vehicle.vehicle_id):
                pickups += 1
            goal = rng.choice(cells)
            if goal == vehicle.current_coord:
                continue
            if fleet.set_destination(vehicle.vehicle_id, destination_id(goal)):
                continue
            failed_plans += 1

        targets = route_targets(fleet.vehicles)
        clock.advance(tick_dt)
        fleet.tick(tick_dt)
        sim_elapsed += tick_dt

        for vehicle in fleet.vehicles:
            vehicle_ticks += 1
            if vehicle.state == VehicleState.WAITING:
                waiting_ticks += 1
        arrivals += count_arrivals(fleet.vehicles, targets)
        coords = [v.current_coord for v in fleet.vehicles]
        if len(set(coords)) != len(coords):
            shared_cell_ticks += 1

    status = fleet.get_system_status()
    wall_elapsed = _time.monotonic() - wall_start
    logger.info(
        "Headless run: %d vehicles, %s mode, %d arrivals, %d deadlocks resolved",
        num_vehicles, status["collision_mode"], arrivals, status["deadlocks_resolved"],
    )
    return {
        "num_vehicles": num_vehicles,
        "num_cargo": num_cargo,
        "collision_mode": status["collision_mode"],
        "arrivals": arrivals,
        "arrivals_per_minute": arrivals / (sim_elapsed / 60.0) if sim_elapsed > 0 else 0.0,
        "pickups": pickups,
        "drops": drops,
        "failed_plans": failed_plans,
        "waiting_fraction": waiting_ticks / vehicle_ticks if vehicle_ticks else 0.0,
        "shared_cell_ticks": shared_cell_ticks,
        "deadlocks_resolved": status["deadlocks_resolved"],
        "forced_yields": status["forced_yields"],
        "replans": status["replans"],
        "sim_duration": sim_elapsed,
        "wall_clock_seconds": wall_elapsed,
        "total_ticks": fleet.total_ticks,
    }
