"""Collaborative tasks: several vehicles sent to one target under a shared priority boost."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .enums import ErrorKind, TaskRole, TaskStatus
from .constants import TASK_PRIORITY_BOOST
from .grid import destination_id
from .models import CollaborativeTask, Outcome

if TYPE_CHECKING:
    from .fleet import Fleet
    from .models import Coord

logger = logging.getLogger(__name__)


class TaskCoordinator:
    """Owns collaborative task records and their priority bookkeeping.

    Lifecycle: ``pending -> in-progress -> completed | failed``. Tasks are never
    completed automatically; ``check_progress`` only reports whether every
    participant is parked on the target.
    """

    def __init__(self) -> None:
        self.tasks: dict[str, CollaborativeTask] = {}
        self._task_counter: int = 0

    def get(self, task_id: str) -> CollaborativeTask | None:
        return self.tasks.get(task_id)

    def create(
        self,
        fleet: Fleet,
        vehicle_ids: list[int],
        target_coord: Coord,
        task_type: str = "pickup",
        now: float = 0.0,
    ) -> Outcome:
        if not vehicle_ids:
            return Outcome.fail(
                ErrorKind.INSUFFICIENT_PARTICIPANTS, "A task needs at least one vehicle",
            )
        vehicles = []
        for vid in dict.fromkeys(vehicle_ids):
            vehicle = fleet.get_vehicle(vid)
            if vehicle is None:
                return Outcome.fail(ErrorKind.VEHICLE_NOT_FOUND, f"Vehicle {vid} not found")
            vehicles.append(vehicle)
        target_coord = tuple(target_coord)
        if not fleet.metrics.in_bounds(target_coord):
            return Outcome.fail(
                ErrorKind.DESTINATION_OUT_OF_BOUNDS, f"Target {target_coord} is outside the grid",
            )

        self._task_counter += 1
        task = CollaborativeTask(
            f"task-{self._task_counter}",
            target_coord,
            [v.vehicle_id for v in vehicles],
            task_type,
            now,
        )

        # Leader (index 0) gets the largest rank bonus
        count = len(vehicles)
        for index, vehicle in enumerate(vehicles):
            boost = TASK_PRIORITY_BOOST + (count - index)
            task.boosts[vehicle.vehicle_id] = boost
            vehicle.priority += boost
            vehicle.task_id = task.task_id
            vehicle.task_role = TaskRole.LEADER if index == 0 else TaskRole.FOLLOWER

        self.tasks[task.task_id] = task
        logger.info(
            "Task %s created: vehicles %s -> %s (%s)",
            task.task_id, task.assigned_vehicles, target_coord, task_type,
        )
        return Outcome.ok("Collaborative task created", task_id=task.task_id)

    def execute(self, fleet: Fleet, task_id: str) -> Outcome:
        """Send every participant to the target and mark the task in progress.

        The task moves to in-progress even if some routes could not be planned;
        those failures are listed under ``data["failures"]``.
        """
        task = self.tasks.get(task_id)
        if task is None:
            return Outcome.fail(ErrorKind.TASK_NOT_FOUND, f"Task {task_id} not found")
        if task.status != TaskStatus.PENDING:
            return Outcome.fail(
                ErrorKind.INVALID_TASK_STATE, f"Task {task_id} is {task.status.value}",
            )

        failures: dict[int, Outcome] = {}
        for vid in task.assigned_vehicles:
            result = fleet.set_destination(vid, destination_id(task.target_coord))
            if not result:
                failures[vid] = result

        task.status = TaskStatus.IN_PROGRESS
        if failures:
            logger.warning(
                "Task %s started with %d/%d routes failing",
                task_id, len(failures), len(task.assigned_vehicles),
            )
            return Outcome(
                False,
                "Route planning failed for some vehicles",
                error=ErrorKind.PATH_NOT_FOUND,
                data={"task_id": task_id, "failures": failures},
            )
        logger.info("Task %s in progress: %d vehicles en route", task_id, len(task.assigned_vehicles))
        return Outcome.ok(
            f"{len(task.assigned_vehicles)} vehicles heading to target", task_id=task_id,
        )

    def check_progress(self, fleet: Fleet, task_id: str) -> bool:
        """Return ``True`` if every participant is idle on the target cell."""
        task = self.tasks.get(task_id)
        if task is None or task.status != TaskStatus.IN_PROGRESS:
            return False
        for vid in task.assigned_vehicles:
            vehicle = fleet.get_vehicle(vid)
            if vehicle is None or vehicle.path or vehicle.current_coord != task.target_coord:
                task.all_arrived = False
                return False
        if not task.all_arrived:
            logger.info("Task %s: all vehicles at target", task_id)
        task.all_arrived = True
        return True

    def complete(self, fleet: Fleet, task_id: str) -> Outcome:
        task = self.tasks.get(task_id)
        if task is None:
            return Outcome.fail(ErrorKind.TASK_NOT_FOUND, f"Task {task_id} not found")
        task.status = TaskStatus.COMPLETED
        self._release_vehicles(fleet, task, stop=False)
        logger.info("Task %s completed", task_id)
        return Outcome.ok("Collaborative task completed", task_id=task_id)

    def cancel(self, fleet: Fleet, task_id: str) -> Outcome:
        task = self.tasks.get(task_id)
        if task is None:
            return Outcome.fail(ErrorKind.TASK_NOT_FOUND, f"Task {task_id} not found")
        task.status = TaskStatus.FAILED
        self._release_vehicles(fleet, task, stop=True)
        del self.tasks[task_id]
        logger.warning("Task %s cancelled", task_id)
        return Outcome.ok("Collaborative task cancelled", task_id=task_id)

    def all_tasks(self) -> list[dict]:
        return [task.snapshot() for task in self.tasks.values()]

    def clear(self) -> None:
        self.tasks.clear()

    def _release_vehicles(self, fleet: Fleet, task: CollaborativeTask, stop: bool) -> None:
        for vid in task.assigned_vehicles:
            vehicle = fleet.get_vehicle(vid)
            if vehicle is None:
                continue
            boost = task.boosts.pop(vid, 0)
            vehicle.priority = max(0, vehicle.priority - boost)
            if vehicle.task_id == task.task_id:
                vehicle.task_id = None
                vehicle.task_role = None
            if stop:
                vehicle.clear_route()
                fleet.ledger.release_reservation(vid)
