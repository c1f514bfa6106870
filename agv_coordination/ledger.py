"""Occupancy and reservation bookkeeping for grid cells."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from .grid import GridMetrics
    from .models import Coord
    from .vehicle import Vehicle


class OccupancyLedger:
    """Which vehicle stands on each cell, and which vehicle has claimed it.

    ``occupied`` is a snapshot rebuilt once per tick; it is not updated as
    vehicles move inside that tick. ``reserved`` holds at most one vehicle per
    cell.
    """

    def __init__(self, metrics: GridMetrics) -> None:
        self.metrics: GridMetrics = metrics
        self.occupied: dict[Coord, int] = {}
        self.reserved: dict[Coord, int] = {}
        self._reserved_by: dict[int, set[Coord]] = {}

    def rebuild_occupancy(self, vehicles: Iterable[Vehicle]) -> None:
        self.occupied.clear()
        for vehicle in vehicles:
            self.occupied[vehicle.current_coord] = vehicle.vehicle_id

    def occupant(self, coord: Coord) -> int | None:
        return self.occupied.get(coord)

    def reserver(self, coord: Coord) -> int | None:
        return self.reserved.get(coord)

    def is_blocked(self, coord: Coord, vehicle_id: int) -> bool:
        """``True`` if *coord* is off-grid or held by a vehicle other than *vehicle_id*."""
        if not self.metrics.in_bounds(coord):
            return True
        occupier = self.occupied.get(coord)
        if occupier is not None and occupier != vehicle_id:
            return True
        reserver = self.reserved.get(coord)
        return reserver is not None and reserver != vehicle_id

    def is_free(self, coord: Coord) -> bool:
        """``True`` if nobody stands on or has reserved *coord*."""
        return coord not in self.occupied and coord not in self.reserved

    def reserve_path(self, vehicle_id: int, coords: Iterable[Coord]) -> None:
        """Replace *vehicle_id*'s reservations with *coords*."""
        self.release_reservation(vehicle_id)
        claimed: set[Coord] = set()
        for coord in coords:
            previous = self.reserved.get(coord)
            if previous is not None and previous != vehicle_id:
                self._reserved_by.get(previous, set()).discard(coord)
            self.reserved[coord] = vehicle_id
            claimed.add(coord)
        self._reserved_by[vehicle_id] = claimed

    def release_cell(self, vehicle_id: int, coord: Coord) -> None:
        """Drop one cell from *vehicle_id*'s claim once it has been passed."""
        if self.reserved.get(coord) == vehicle_id:
            del self.reserved[coord]
        self._reserved_by.get(vehicle_id, set()).discard(coord)

    def release_reservation(self, vehicle_id: int) -> None:
        for coord in self._reserved_by.pop(vehicle_id, set()):
            if self.reserved.get(coord) == vehicle_id:
                del self.reserved[coord]

    def reserved_cells(self, vehicle_id: int) -> set[Coord]:
        return set(self._reserved_by.get(vehicle_id, set()))

    def clear(self) -> None:
        self.occupied.clear()
        self.reserved.clear()
        self._reserved_by.clear()
