"""Interactive pygame entry point.

Run with::

    python -m agv_coordination
"""

from __future__ import annotations

import logging
import random
import sys

import pygame

from .enums import CollisionMode
from .constants import (
    DEFAULT_GRID_WIDTH, DEFAULT_GRID_DEPTH, DEFAULT_GRID_HEIGHT,
    FPS, SPEED_STEPS,
)
from .fleet import Fleet
from .headless import SimClock
from .grid import GridMetrics, destination_id
from .models import Cargo
from .renderer import render, screen_to_cell, window_size

logger = logging.getLogger(__name__)


def main() -> None:
    """Launch the interactive coordination viewer."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
    )

    metrics = GridMetrics(DEFAULT_GRID_WIDTH, DEFAULT_GRID_DEPTH, DEFAULT_GRID_HEIGHT)
    sim_clock = SimClock()
    fleet = Fleet(clock=sim_clock)
    fleet.initialize(
        [
            {"name": "Vehicle 1", "start": (0, 0), "priority": 1},
            {"name": "Vehicle 2", "start": (metrics.width - 1, 0), "priority": 2},
            {"name": "Vehicle 3", "start": (0, metrics.depth - 1), "priority": 3},
        ],
        metrics,
    )
    cells = list(metrics.cells())
    fleet.set_cargo(Cargo(cell) for cell in random.sample(cells, min(6, len(cells))))

    pygame.init()
    screen = pygame.display.set_mode(window_size(metrics))
    pygame.display.set_caption("AGV Coordination")
    clock = pygame.time.Clock()
    font_sm = pygame.font.SysFont("Arial", 11)
    font_md = pygame.font.SysFont("Arial", 14, bold=True)

    logger.info("Grid: %dx%d, %d vehicles", metrics.width, metrics.depth, len(fleet.vehicles))
    logger.info("Controls: TAB=select, Click=send, P=pick up, L=drop, M=toggle mode, D=debug")
    logger.info("          Space=pause, Up/Down=speed steps, Q=quit")

    selected = fleet.vehicles[0] if fleet.vehicles else None
    speed_index = 1
    time_scale = SPEED_STEPS[speed_index]
    paused = False

    running = True
    while running:
        dt = clock.tick(FPS) / 1000.0

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False

            elif event.type == pygame.KEYDOWN:
                if event.key in (pygame.K_q, pygame.K_ESCAPE):
                    running = False

                elif event.key == pygame.K_UP:
                    speed_index = min(speed_index + 1, len(SPEED_STEPS) - 1)
                    time_scale = SPEED_STEPS[speed_index]
                    logger.info("Speed: %sx", time_scale)

                elif event.key == pygame.K_DOWN:
                    speed_index = max(speed_index - 1, 0)
                    time_scale = SPEED_STEPS[speed_index]
                    logger.info("Speed: %sx", time_scale)

                elif event.key == pygame.K_SPACE:
                    paused = not paused
                    logger.info("PAUSED" if paused else "RESUMED")

                elif event.key == pygame.K_TAB and fleet.vehicles:
                    idx = fleet.vehicles.index(selected) if selected else -1
                    selected = fleet.vehicles[(idx + 1) % len(fleet.vehicles)]
                    logger.info("Selected %s", selected.name)

                elif event.key == pygame.K_m:
                    new_mode = (
                        CollisionMode.SIMPLE
                        if fleet.collision_mode == CollisionMode.ADVANCED
                        else CollisionMode.ADVANCED
                    )
                    fleet.set_collision_mode(new_mode)

                elif event.key == pygame.K_p and selected:
                    logger.info(fleet.pick_up_cargo(selected.vehicle_id).message)

                elif event.key == pygame.K_l and selected:
                    logger.info(fleet.drop_cargo(selected.vehicle_id).message)

                elif event.key == pygame.K_d:
                    logger.info("\n" + "=" * 60)
                    logger.info("DEBUG DUMP")
                    logger.info("=" * 60)
                    for status in fleet.get_all_car_status():
                        logger.info("  %s", status)
                    for task in fleet.get_all_collaborative_tasks():
                        logger.info("  %s", task)
                    logger.info("  %s", fleet.get_system_status())
                    logger.info("=" * 60 + "\n")

            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1 and selected:
                cell = screen_to_cell(metrics, *event.pos)
                if cell is not None:
                    logger.info(fleet.set_destination(selected.vehicle_id, destination_id(cell)).message)

        if not paused:
            sim_clock.advance(dt * time_scale)
            fleet.tick(dt * time_scale)

        render(screen, fleet, font_sm, font_md, selected, time_scale, paused)
        pygame.display.flip()

    fleet.dispose()
    pygame.quit()
    sys.exit()


if __name__ == "__main__":
    main()
