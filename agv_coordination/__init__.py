"""
AGV grid coordination package.

Public API re-exports. The pygame viewer lives in ``renderer`` and
``__main__`` and is not imported here.
"""

from .enums import CollisionMode, VehicleState, TaskStatus, TaskRole, ErrorKind
from .constants import *  # noqa: F401,F403
from .models import Cargo, CollaborativeTask, Outcome, Waypoint
from .grid import GridMetrics, destination_id, parse_destination
from .ledger import OccupancyLedger
from .pathfinding import astar, manhattan
from .vehicle import Vehicle
from .resolver import CollisionResolver, find_cycle
from .tasks import TaskCoordinator
from .fleet import Fleet, default_vehicle_configs
from .headless import SimClock, run_headless

__all__ = [
    "CollisionMode", "VehicleState", "TaskStatus", "TaskRole", "ErrorKind",
    "Cargo", "CollaborativeTask", "Outcome", "Waypoint",
    "GridMetrics", "destination_id", "parse_destination",
    "OccupancyLedger",
    "astar", "manhattan",
    "Vehicle",
    "CollisionResolver", "find_cycle",
    "TaskCoordinator",
    "Fleet", "default_vehicle_configs",
    "SimClock", "run_headless",
]
