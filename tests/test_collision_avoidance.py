"""
Test suite for vehicle motion, blocking, priority escalation and deadlock breaking.
Runs the engine on a simulation clock; no pygame dependency.
"""

from agv_coordination import (
    CollisionMode, Fleet, GridMetrics, SimClock, VehicleState,
    UNLOAD_FACING, find_cycle,
)


# -- Helpers ----------------------------------------------------------

def _make_fleet(configs, width=5, depth=5, mode=CollisionMode.ADVANCED, **kwargs):
    clock = SimClock()
    fleet = Fleet(collision_mode=mode, clock=clock, **kwargs)
    fleet.initialize(configs, GridMetrics(width, depth))
    return fleet, clock


def _car(name, start, priority):
    return {"name": name, "start": start, "priority": priority}


def _run(fleet, clock, seconds, dt=0.1):
    for _ in range(int(round(seconds / dt))):
        clock.advance(dt)
        fleet.tick(dt)


def _force_route(fleet, vehicle, coords):
    """Give *vehicle* a fixed route, bypassing the planner."""
    vehicle.assign_route(coords, fleet.metrics, coords[-1])
    fleet.ledger.reserve_path(vehicle.vehicle_id, coords)


def _coords(vehicle):
    return [wp.coord for wp in vehicle.path]


# -- Motion -----------------------------------------------------------

def test_vehicle_arrives_and_releases_reservation():
    fleet, clock = _make_fleet([_car("A", (0, 0), 1)])
    a = fleet.get_vehicle(1)
    assert fleet.set_destination(1, "3-0")
    assert a.state == VehicleState.MOVING

    _run(fleet, clock, 2.0)
    assert a.state == VehicleState.IDLE
    assert a.current_coord == (3, 0)
    assert a.target_coord is None
    assert a.heading == UNLOAD_FACING
    assert fleet.ledger.reserved_cells(1) == set()


def test_reserved_cells_track_current_cell_and_remaining_path():
    fleet, clock = _make_fleet([_car("A", (0, 0), 1)])
    a = fleet.get_vehicle(1)
    fleet.set_destination(1, "0-4")
    _run(fleet, clock, 0.7)
    assert a.path
    assert a.current_coord == (0, 1)
    assert fleet.ledger.reserved_cells(1) == {a.current_coord} | set(a.remaining_coords())
    assert fleet.ledger.reserver((0, 0)) is None


def test_budget_carries_over_several_cells_in_one_tick():
    fleet, clock = _make_fleet([_car("A", (0, 0), 1)], speed=14.0)
    a = fleet.get_vehicle(1)
    fleet.set_destination(1, "4-0")
    clock.advance(0.25)
    fleet.tick(0.25)
    assert a.current_coord == (3, 0)
    assert a.state == VehicleState.MOVING


def test_occupancy_snapshot_is_one_tick_behind():
    fleet, clock = _make_fleet([_car("Front", (1, 0), 1), _car("Back", (0, 0), 1)])
    front = fleet.get_vehicle(1)
    back = fleet.get_vehicle(2)
    assert fleet.set_destination(1, "2-0")
    assert fleet.set_destination(2, "1-0")

    clock.advance(0.5)
    fleet.tick(0.5)
    assert front.current_coord == (2, 0)
    assert back.is_waiting
    assert back.blocked_by == 1

    clock.advance(0.5)
    fleet.tick(0.5)
    assert not back.is_waiting
    assert back.current_coord == (1, 0)


# -- Simple mode ------------------------------------------------------

def test_simple_mode_never_mutates_blocked_path():
    fleet, clock = _make_fleet(
        [_car("A", (0, 0), 5), _car("B", (1, 0), 1)], mode=CollisionMode.SIMPLE,
    )
    a = fleet.get_vehicle(1)
    b = fleet.get_vehicle(2)
    _force_route(fleet, a, [(0, 0), (1, 0), (2, 0)])

    _run(fleet, clock, 20.0)
    assert _coords(a) == [(0, 0), (1, 0), (2, 0)]
    assert a.target_coord == (2, 0)
    assert a.is_waiting
    assert a.blocked_by == 2
    assert a.wait_reason
    assert b.current_coord == (1, 0)
    assert not b.path
    assert fleet.resolver.forced_yields == 0
    assert fleet.resolver.replans == 0


def test_simple_mode_skips_deadlock_scan():
    fleet, clock = _make_fleet(
        [_car("A", (0, 0), 1), _car("B", (1, 0), 2)], mode="simple",
    )
    fleet.set_destination(1, "1-0")
    fleet.set_destination(2, "0-0")
    _run(fleet, clock, 10.0)
    assert fleet.get_vehicle(1).is_waiting
    assert fleet.get_vehicle(2).is_waiting
    assert fleet.resolver.deadlocks_resolved == 0


# -- Advanced mode escalation -----------------------------------------

def test_higher_priority_forces_idle_occupier_to_yield():
    fleet, clock = _make_fleet([_car("A", (0, 0), 5), _car("B", (1, 0), 1)])
    a = fleet.get_vehicle(1)
    b = fleet.get_vehicle(2)
    _force_route(fleet, a, [(0, 0), (1, 0), (2, 0)])

    _run(fleet, clock, 4.0)
    assert a.is_waiting
    assert b.current_coord == (1, 0)

    _run(fleet, clock, 8.0)
    assert fleet.resolver.forced_yields == 1
    assert a.current_coord == (2, 0)
    assert a.state == VehicleState.IDLE
    assert b.current_coord == (3, 0)
    assert b.target_coord is None


def test_lower_priority_waiter_replans_around_occupier():
    fleet, clock = _make_fleet([_car("A", (0, 0), 1), _car("B", (1, 0), 5)])
    a = fleet.get_vehicle(1)
    b = fleet.get_vehicle(2)
    _force_route(fleet, a, [(0, 0), (1, 0), (2, 0)])

    _run(fleet, clock, 10.0)
    assert fleet.resolver.replans == 1
    assert fleet.resolver.forced_yields == 0
    assert a.current_coord == (2, 0)
    assert b.current_coord == (1, 0)
    assert not b.path


def test_occupier_carrying_cargo_is_never_forced():
    fleet, clock = _make_fleet([_car("A", (0, 0), 5), _car("B", (1, 0), 1)])
    a = fleet.get_vehicle(1)
    b = fleet.get_vehicle(2)
    b.has_cargo_task = True
    _force_route(fleet, a, [(0, 0), (1, 0), (2, 0)])

    _run(fleet, clock, 10.0)
    assert fleet.resolver.forced_yields == 0
    assert b.current_coord == (1, 0)
    assert a.current_coord == (2, 0)


def test_failed_replan_extends_wait():
    fleet, clock = _make_fleet(
        [_car("A", (0, 0), 1), _car("B", (1, 0), 9)], width=3, depth=1,
    )
    a = fleet.get_vehicle(1)
    _force_route(fleet, a, [(0, 0), (1, 0), (2, 0)])

    _run(fleet, clock, 5.5)
    assert a.is_waiting
    assert a.wait_start_time > 5.0
    assert _coords(a) == [(0, 0), (1, 0), (2, 0)]
    assert fleet.resolver.replans == 0


def test_forced_yield_never_targets_cell_entered_this_tick():
    fleet, clock = _make_fleet(
        [_car("X", (0, 0), 1), _car("W", (1, 2), 5), _car("Y", (2, 2), 1)],
        width=3, depth=3, speed=4.0, max_wait_time=1.0,
    )
    x = fleet.get_vehicle(1)
    w = fleet.get_vehicle(2)
    y = fleet.get_vehicle(3)
    _force_route(fleet, w, [(1, 2), (2, 2)])

    # 0.25s ticks with one cell per tick; W starts waiting at 0.25s
    _run(fleet, clock, 1.25, dt=0.25)
    assert w.is_waiting
    assert not y.path

    assert fleet.set_destination(1, "2-0")
    clock.advance(0.25)
    fleet.tick(0.25)

    assert x.current_coord == (1, 0)
    assert fleet.resolver.forced_yields == 1
    assert y.path
    assert _coords(y)[-1] == (0, 1)
    assert (1, 0) not in _coords(y)


def test_yield_with_no_free_cell_stops_vehicle():
    fleet, _ = _make_fleet([_car("A", (0, 0), 1), _car("B", (1, 0), 1)], width=2, depth=1)
    a = fleet.get_vehicle(1)
    _force_route(fleet, a, [(0, 0), (1, 0)])

    assert not fleet.resolver.move_to_safe_position(fleet, a)
    assert not a.path
    assert a.target_coord is None
    assert a.state == VehicleState.IDLE
    assert fleet.ledger.reserved_cells(1) == set()
    assert a.current_coord == (0, 0)


# -- Deadlock ---------------------------------------------------------

def test_find_cycle_two_vehicles():
    assert set(find_cycle({1: 2, 2: 1})) == {1, 2}


def test_find_cycle_ignores_chains():
    assert find_cycle({1: 2, 2: 3}) is None
    assert find_cycle({}) is None


def test_find_cycle_with_tail():
    assert set(find_cycle({4: 1, 1: 2, 2: 3, 3: 1})) == {1, 2, 3}


def test_deadlock_lowest_priority_yields():
    fleet, clock = _make_fleet([_car("A", (0, 0), 1), _car("B", (1, 0), 2)])
    a = fleet.get_vehicle(1)
    b = fleet.get_vehicle(2)
    assert fleet.set_destination(1, "1-0")
    assert fleet.set_destination(2, "0-0")

    _run(fleet, clock, 2.0)
    assert a.is_waiting and a.blocked_by == 2
    assert b.is_waiting and b.blocked_by == 1
    assert fleet.resolver.deadlocks_resolved == 0

    _run(fleet, clock, 6.0)
    assert fleet.resolver.deadlocks_resolved == 1
    assert fleet.resolver.forced_yields == 0
    assert a.target_coord is None
    assert a.current_coord != (1, 0)
    assert b.current_coord == (0, 0)
    assert b.state == VehicleState.IDLE


def test_head_on_scenario_higher_priority_keeps_goal():
    fleet, clock = _make_fleet([_car("A", (0, 0), 1), _car("B", (4, 0), 2)])
    a = fleet.get_vehicle(1)
    b = fleet.get_vehicle(2)
    assert fleet.set_destination(1, "4-0")
    assert fleet.set_destination(2, "0-0")

    for _ in range(100):
        clock.advance(0.1)
        fleet.tick(0.1)
        assert b.target_coord in ((0, 0), None)
        if b.target_coord is None:
            break

    assert b.current_coord == (0, 0)
    assert b.state == VehicleState.IDLE
    assert a.current_coord == (4, 0) or a.target_coord is None
