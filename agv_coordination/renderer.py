"""All pygame rendering functions for the coordination viewer."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pygame

from .enums import VehicleState
from .constants import (
    CELL_PX, PANEL_WIDTH,
    BG_COLOR, CELL_COLOR, RESERVED_COLOR, OUTLINE_COLOR,
    PANEL_BG, PANEL_TEXT, PANEL_HEADER, PANEL_SEPARATOR,
    PANEL_GREEN, PANEL_YELLOW, PANEL_RED,
    VEHICLE_COLOR, WAITING_COLOR, PATH_COLOR, CARGO_COLOR,
)

if TYPE_CHECKING:
    from .fleet import Fleet
    from .grid import GridMetrics
    from .models import Vec3
    from .vehicle import Vehicle


def window_size(metrics: GridMetrics) -> tuple[int, int]:
    return (metrics.width * CELL_PX + PANEL_WIDTH, max(metrics.depth * CELL_PX, 480))


def world_to_screen(metrics: GridMetrics, position: Vec3) -> tuple[int, int]:
    """Project a world position onto the top-down (x, z) map."""
    ox, _, oz = metrics.origin
    gx = (position[0] - ox) / metrics.step_x
    gz = (position[2] - oz) / metrics.step_z
    return (int(gx * CELL_PX + CELL_PX / 2), int(gz * CELL_PX + CELL_PX / 2))


def screen_to_cell(metrics: GridMetrics, px: int, py: int) -> tuple[int, int] | None:
    cell = (px // CELL_PX, py // CELL_PX)
    return cell if metrics.in_bounds(cell) else None


def draw_grid(surface: pygame.Surface, fleet: Fleet, font: pygame.font.Font) -> None:
    """Draw cells, reservation tint and cargo stack heights."""
    metrics = fleet.metrics
    for x, z in metrics.cells():
        rect = pygame.Rect(x * CELL_PX, z * CELL_PX, CELL_PX, CELL_PX)
        color = RESERVED_COLOR if (x, z) in fleet.ledger.reserved else CELL_COLOR
        pygame.draw.rect(surface, color, rect)
        pygame.draw.rect(surface, OUTLINE_COLOR, rect, 1)

        stack = fleet.cargo_store.get((x, z))
        if stack:
            box = pygame.Rect(0, 0, CELL_PX // 3, CELL_PX // 3)
            box.topright = (rect.right - 4, rect.top + 4)
            pygame.draw.rect(surface, CARGO_COLOR, box, border_radius=2)
            txt = font.render(str(len(stack)), True, (255, 255, 255))
            surface.blit(txt, txt.get_rect(center=box.center))


def draw_vehicle(
    surface: pygame.Surface,
    metrics: GridMetrics,
    vehicle: Vehicle,
    font: pygame.font.Font,
    selected: bool = False,
) -> None:
    """Draw a vehicle disc at its world position plus dots for the remaining path."""
    for waypoint in vehicle.path[vehicle.path_index:]:
        pygame.draw.circle(surface, PATH_COLOR, world_to_screen(metrics, waypoint.position), 3)

    cx, cy = world_to_screen(metrics, vehicle.position)
    radius = CELL_PX // 3
    pygame.draw.circle(surface, VEHICLE_COLOR, (cx, cy), radius)
    pygame.draw.circle(surface, (0, 0, 0), (cx, cy), radius, 2)
    if vehicle.state == VehicleState.WAITING:
        pygame.draw.circle(surface, WAITING_COLOR, (cx, cy), radius + 3, 3)
    if selected:
        pygame.draw.circle(surface, PANEL_HEADER, (cx, cy), radius + 7, 2)
    if vehicle.cargo is not None:
        box = pygame.Rect(0, 0, radius, radius // 2)
        box.center = (cx, cy + radius // 2)
        pygame.draw.rect(surface, CARGO_COLOR, box, border_radius=2)

    id_text = font.render(str(vehicle.vehicle_id), True, (255, 255, 255))
    surface.blit(id_text, id_text.get_rect(center=(cx, cy - 4)))


def draw_panel(
    surface: pygame.Surface,
    fleet: Fleet,
    font_sm: pygame.font.Font,
    font_md: pygame.font.Font,
    selected: Vehicle | None,
    time_scale: float,
    paused: bool,
) -> None:
    """Draw the status panel on the right side of the window."""
    px = fleet.metrics.width * CELL_PX
    height = surface.get_height()
    pygame.draw.rect(surface, PANEL_BG, pygame.Rect(px, 0, PANEL_WIDTH, height))

    y = 10
    line_h = 16

    def header(text: str) -> None:
        nonlocal y
        pygame.draw.line(surface, PANEL_SEPARATOR, (px + 10, y), (px + PANEL_WIDTH - 10, y))
        y += 4
        surface.blit(font_md.render(text, True, PANEL_HEADER), (px + 10, y))
        y += line_h + 4

    def row(label_text: str, value: str, color: tuple = PANEL_TEXT) -> None:
        nonlocal y
        surface.blit(font_sm.render(f"  {label_text}: {value}", True, color), (px + 8, y))
        y += line_h

    status = fleet.get_system_status()

    header("SIMULATION")
    row("Elapsed", f"{status['sim_elapsed']:.1f}s")
    row("Speed", f"{time_scale}x")
    row("Status", "PAUSED" if paused else "Running", PANEL_RED if paused else PANEL_GREEN)
    row("Mode", status["collision_mode"])
    y += 8

    header("FLEET")
    row("Moving", str(status["moving_cars"]), PANEL_GREEN)
    row("Waiting", str(status["waiting_cars"]), PANEL_YELLOW if status["waiting_cars"] else PANEL_TEXT)
    row("Idle", str(status["idle_cars"]))
    row("Deadlocks", str(status["deadlocks_resolved"]))
    row("Yields", str(status["forced_yields"]))
    row("Replans", str(status["replans"]))
    row("Tasks", str(status["active_tasks"]))
    y += 8

    header("SELECTED")
    if selected is not None:
        info = fleet.get_car_status(selected.vehicle_id)
        row("Name", info["name"])
        row("State", info["state"])
        row("Cell", str(info["current_coord"]))
        row("Target", str(info["target_coord"]))
        row("Priority", str(info["priority"]))
        row("Cargo", "yes" if info["has_cargo"] else "no")
        if info["wait_reason"]:
            row("Waiting", info["wait_reason"], PANEL_RED)
    else:
        row("Vehicle", "None (TAB to select)")

    hint = font_sm.render(
        "TAB:Select Click:Go P:Pick L:Drop M:Mode", True, PANEL_SEPARATOR,
    )
    surface.blit(hint, (px + 10, height - 20))


def render(
    screen: pygame.Surface,
    fleet: Fleet,
    font_sm: pygame.font.Font,
    font_md: pygame.font.Font,
    selected: Vehicle | None = None,
    time_scale: float = 1.0,
    paused: bool = False,
) -> None:
    """Full frame render: background -> grid -> vehicles -> panel."""
    screen.fill(BG_COLOR)
    draw_grid(screen, fleet, font_sm)
    for vehicle in fleet.vehicles:
        draw_vehicle(screen, fleet.metrics, vehicle, font_md, selected=vehicle is selected)
    draw_panel(screen, fleet, font_sm, font_md, selected, time_scale, paused)
