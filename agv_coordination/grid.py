"""Grid geometry: lattice dimensions and cell -> world conversion."""

from __future__ import annotations

from typing import Iterator

from .constants import DEFAULT_GRID_WIDTH, DEFAULT_GRID_DEPTH, DEFAULT_GRID_HEIGHT
from .models import Coord, Vec3


class GridMetrics:
    """Static geometry of the storage lattice.

    Cells are addressed as ``(x, z)`` with ``0 <= x < width`` and
    ``0 <= z < depth``. ``height`` is the number of shelf levels above the
    floor slot, so one stack holds at most ``height + 1`` items.
    """

    def __init__(
        self,
        width: int = DEFAULT_GRID_WIDTH,
        depth: int = DEFAULT_GRID_DEPTH,
        height: int = DEFAULT_GRID_HEIGHT,
        step_x: float = 1.0,
        step_y: float = 1.0,
        step_z: float = 1.0,
        origin: Vec3 = (0.0, 0.0, 0.0),
        track_y: float = 0.0,
    ) -> None:
        if width <= 0 or depth <= 0:
            raise ValueError(f"Grid must have positive size, got {width}x{depth}")
        if height < 0:
            raise ValueError(f"Grid height must be non-negative, got {height}")
        self.width: int = width
        self.depth: int = depth
        self.height: int = height
        self.step_x: float = step_x
        self.step_y: float = step_y
        self.step_z: float = step_z
        self.origin: Vec3 = origin
        self.track_y: float = track_y

    def in_bounds(self, coord: Coord) -> bool:
        x, z = coord
        return 0 <= x < self.width and 0 <= z < self.depth

    def cells(self) -> Iterator[Coord]:
        """Yield every cell in row-major order (``z`` outer, ``x`` inner)."""
        for z in range(self.depth):
            for x in range(self.width):
                yield (x, z)

    def coord_to_world(self, coord: Coord) -> Vec3:
        """Return the world position of a cell centre at track height."""
        ox, _, oz = self.origin
        return (ox + coord[0] * self.step_x, self.track_y, oz + coord[1] * self.step_z)

    def cargo_aligned_position(self, coord: Coord, heading: Vec3) -> Vec3:
        """World position where a vehicle facing *heading* lines its cargo up with *coord*.

        The vehicle body sits half a cell behind the cell centre along its heading.
        """
        hx, _, hz = heading
        if abs(hx) > abs(hz):
            axis_step = self.step_x
        else:
            axis_step = self.step_z
        wx, wy, wz = self.coord_to_world(coord)
        length = (hx * hx + hz * hz) ** 0.5
        if length == 0:
            return (wx, wy, wz)
        scale = -axis_step / 2 / length
        return (wx + hx * scale, wy, wz + hz * scale)

    def shelf_position(self, coord: Coord, level: int) -> Vec3:
        """World position of stack slot *level* on cell *coord*."""
        ox, oy, oz = self.origin
        return (
            ox + coord[0] * self.step_x,
            oy + level * self.step_y,
            oz + coord[1] * self.step_z,
        )


def parse_destination(destination_id: str) -> Coord | None:
    """Parse an ``"x-z"`` destination id. Returns ``None`` if malformed."""
    parts = str(destination_id).split("-")
    if len(parts) != 2:
        return None
    try:
        return (int(parts[0]), int(parts[1]))
    except ValueError:
        return None


def destination_id(coord: Coord) -> str:
    return f"{coord[0]}-{coord[1]}"
