"""Data models: Waypoint, Cargo, CollaborativeTask and the Outcome result type."""

from __future__ import annotations

from .enums import ErrorKind, TaskStatus

Coord = tuple[int, int]
Vec3 = tuple[float, float, float]


class Waypoint:
    """One step of a planned route: grid cell, facing and world position."""

    __slots__ = ("coord", "direction", "position")

    def __init__(self, coord: Coord, direction: Vec3, position: Vec3) -> None:
        self.coord: Coord = coord
        self.direction: Vec3 = direction
        self.position: Vec3 = position

    def __repr__(self) -> str:
        return f"Waypoint({self.coord})"


class Cargo:
    """A storage item that sits on a shelf stack or rides on one vehicle."""

    _next_id: int = 1

    def __init__(self, coord: Coord, level: int = 0, name: str | None = None) -> None:
        self.cargo_id: int = Cargo._next_id
        Cargo._next_id += 1
        self.name: str = name or f"Cargo {self.cargo_id}"
        self.coord: Coord = coord
        self.level: int = level
        self.carried_by: int | None = None  # vehicle id while attached
        self.position: Vec3 = (0.0, 0.0, 0.0)

    def __repr__(self) -> str:
        return f"Cargo({self.cargo_id}, {self.coord}, level={self.level})"


class CollaborativeTask:
    """Several vehicles heading to one shared target under a priority boost."""

    def __init__(
        self,
        task_id: str,
        target_coord: Coord,
        assigned_vehicles: list[int],
        task_type: str,
        created_at: float,
    ) -> None:
        self.task_id: str = task_id
        self.target_coord: Coord = target_coord
        self.assigned_vehicles: list[int] = assigned_vehicles
        self.task_type: str = task_type
        self.status: TaskStatus = TaskStatus.PENDING
        self.created_at: float = created_at
        # Exact boost added per vehicle, subtracted again on complete/cancel
        self.boosts: dict[int, int] = {}
        self.all_arrived: bool = False

    @property
    def leader(self) -> int:
        return self.assigned_vehicles[0]

    def snapshot(self) -> dict:
        """Return a plain-dict view for diagnostics."""
        return {
            "id": self.task_id,
            "target_coord": self.target_coord,
            "assigned_vehicles": list(self.assigned_vehicles),
            "task_type": self.task_type,
            "status": self.status.value,
            "created_at": self.created_at,
            "all_arrived": self.all_arrived,
        }


class Outcome:
    """Structured result of an operation on the fleet.

    Truthy when the operation succeeded. ``data`` carries extra fields such as
    the new ``task_id`` or per-vehicle ``failures``.
    """

    __slots__ = ("success", "message", "error", "data")

    def __init__(
        self,
        success: bool,
        message: str,
        error: ErrorKind | None = None,
        data: dict | None = None,
    ) -> None:
        self.success: bool = success
        self.message: str = message
        self.error: ErrorKind | None = error
        self.data: dict = data or {}

    @classmethod
    def ok(cls, message: str, **data) -> Outcome:
        return cls(True, message, data=data)

    @classmethod
    def fail(cls, error: ErrorKind, message: str, **data) -> Outcome:
        return cls(False, message, error=error, data=data)

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        kind = f", {self.error.value}" if self.error else ""
        return f"Outcome({self.success}{kind}: {self.message!r})"
