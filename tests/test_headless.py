"""
Tests for the headless runner and its simulation clock.
"""

import pytest

from agv_coordination import Fleet, GridMetrics, SimClock, run_headless
from agv_coordination.headless import count_arrivals, route_targets


EXPECTED_KEYS = {
    "num_vehicles", "num_cargo", "collision_mode", "arrivals", "arrivals_per_minute",
    "pickups", "drops", "failed_plans", "waiting_fraction", "shared_cell_ticks",
    "deadlocks_resolved", "forced_yields", "replans", "sim_duration",
    "wall_clock_seconds", "total_ticks",
}


def test_sim_clock_only_moves_when_advanced():
    clock = SimClock(2.0)
    assert clock() == 2.0
    assert clock.advance(0.5) == 2.5
    assert clock() == 2.5


def test_headless_run_reports_metrics():
    result = run_headless(num_vehicles=3, num_cargo=4, sim_duration=60.0, seed=7)
    assert set(result) == EXPECTED_KEYS
    assert result["num_vehicles"] == 3
    assert result["collision_mode"] == "advanced"
    assert result["arrivals"] > 0
    assert result["arrivals_per_minute"] > 0
    assert 0.0 <= result["waiting_fraction"] <= 1.0
    assert result["total_ticks"] == pytest.approx(60.0 / 0.05, abs=1)


def test_headless_run_is_reproducible_with_seed():
    first = run_headless(num_vehicles=4, sim_duration=30.0, seed=3)
    second = run_headless(num_vehicles=4, sim_duration=30.0, seed=3)
    for key in ("arrivals", "pickups", "drops", "failed_plans", "deadlocks_resolved"):
        assert first[key] == second[key]


def test_headless_simple_mode():
    result = run_headless(num_vehicles=2, sim_duration=20.0, collision_mode="simple", seed=1)
    assert result["collision_mode"] == "simple"
    assert result["forced_yields"] == 0
    assert result["replans"] == 0
    assert result["deadlocks_resolved"] == 0


def test_headless_rejects_too_many_vehicles():
    with pytest.raises(ValueError):
        run_headless(num_vehicles=10, width=3, depth=3, sim_duration=1.0)


def test_arrivals_count_only_routes_that_reach_their_goal():
    clock = SimClock()
    fleet = Fleet(speed=4.0, clock=clock)
    fleet.initialize(
        [
            {"name": "A", "start": (0, 0), "priority": 1},
            {"name": "B", "start": (2, 0), "priority": 1},
        ],
        GridMetrics(3, 1),
    )
    assert fleet.set_destination(1, "1-0")
    targets = route_targets(fleet.vehicles)
    assert targets == {1: (1, 0)}

    clock.advance(0.25)
    fleet.tick(0.25)
    assert count_arrivals(fleet.vehicles, targets) == 1


def test_arrivals_ignore_routes_cleared_by_a_failed_yield():
    clock = SimClock()
    fleet = Fleet(clock=clock)
    fleet.initialize(
        [
            {"name": "A", "start": (0, 0), "priority": 1},
            {"name": "B", "start": (1, 0), "priority": 1},
        ],
        GridMetrics(2, 1),
    )
    a = fleet.get_vehicle(1)
    fleet.set_destination(1, "1-0")
    targets = route_targets(fleet.vehicles)

    assert not fleet.resolver.move_to_safe_position(fleet, a)
    assert not a.path
    assert count_arrivals(fleet.vehicles, targets) == 0
