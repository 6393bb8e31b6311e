"""
creature_evolution module: render/renderer.py

Pygame rendering of the arena (top-down).
"""

from __future__ import annotations
import math
from typing import Iterable, List

import pygame

from organism.creature import Creature
from organism.events import LogEntry
from organism.genome import SensorType
from organism.nodes import Circle, Rectangle
from render import colors
from world.food import PowerUp, PowerUpKind
from world.physics import Body


def _body_polygon(body: Body) -> List[tuple]:
    shape = body.shape
    hw = shape.width / 2
    hh = shape.length / 2
    corners = [(-hw, -hh), (hw, -hh), (hw, hh), (-hw, hh)]
    return [body.world_point(c) for c in corners]


def draw_body(screen: pygame.Surface, body: Body, color, width: int = 0) -> None:
    if isinstance(body.shape, Circle):
        pygame.draw.circle(screen, color, (int(body.x), int(body.y)), max(1, int(body.shape.radius)), width)
    elif isinstance(body.shape, Rectangle):
        pygame.draw.polygon(screen, color, _body_polygon(body), width)
    else:
        raise TypeError(f"Unknown body shape: {body.shape!r}")


def draw_obstacles(screen: pygame.Surface, obstacles: Iterable[Body]) -> None:
    for body in obstacles:
        draw_body(screen, body, colors.OBSTACLE)


def draw_power_ups(screen: pygame.Surface, power_ups: Iterable[PowerUp]) -> None:
    for p in power_ups:
        if p.collected:
            continue
        col = colors.SUPER_POWER_UP if p.kind == PowerUpKind.SUPER else colors.HEALTH_POWER_UP
        x, y = int(p.body.x), int(p.body.y)
        pygame.draw.circle(screen, colors.mix(colors.BG, col, 0.35), (x, y), int(p.radius) + 4)
        pygame.draw.circle(screen, col, (x, y), int(p.radius))


def _draw_eye_rays(screen: pygame.Surface, creature: Creature) -> None:
    for i, sensor in enumerate(creature.dna.sensors):
        if sensor.type != SensorType.EYE:
            continue
        body = creature.body_for_segment(sensor.segment_id)
        if body is None:
            if not creature.bodies:
                return
            body = creature.bodies[0]
        activation = creature.sensor_readings[i] if i < len(creature.sensor_readings) else 0.0
        col = colors.mix(colors.mix(colors.BG, colors.EYE_RAY, 0.25), colors.EYE_RAY, activation)

        facing = body.angle + sensor.angle
        end = (body.x + math.cos(facing) * sensor.range, body.y + math.sin(facing) * sensor.range)
        pygame.draw.line(screen, col, (body.x, body.y), end, 1)


def _draw_bars(screen: pygame.Surface, creature: Creature, max_value: float = 200.0) -> None:
    cx, cy = creature.center_position()
    w = 30
    x = int(cx - w / 2)
    y = int(cy - 40)
    for value, col in ((creature.health, colors.HEALTH_BAR), (creature.food, colors.FOOD_BAR)):
        pygame.draw.rect(screen, colors.BAR_BG, (x, y, w, 3))
        filled = int(w * max(0.0, min(1.0, value / max_value)))
        if filled:
            pygame.draw.rect(screen, col, (x, y, filled, 3))
        y += 5


def draw_creature(screen: pygame.Surface, creature: Creature, debug: bool = False) -> None:
    if not creature.bodies:
        return
    alpha = creature.fade_alpha

    if creature.is_alive:
        _draw_eye_rays(screen, creature)
        # prettier creatures shine a little
        if creature.dna.beauty > 0.5:
            cx, cy = creature.center_position()
            glow = colors.mix(colors.BG, (255, 255, 255), (creature.dna.beauty - 0.5) * 0.4)
            pygame.draw.circle(screen, glow, (int(cx), int(cy)), 45, 1)

    # joints first
    for motor in creature.motors:
        c = motor.constraint
        a = c.body_a.world_point(c.point_a)
        b = c.body_b.world_point(c.point_b)
        pygame.draw.line(screen, colors.fade(colors.JOINT, alpha), a, b, 2)

    for body in creature.bodies:
        seg = body.segment
        col = seg.color if creature.is_alive else colors.greyed(seg.color)
        draw_body(screen, body, colors.fade(col, alpha))

        pos = (int(body.x), int(body.y))
        if seg.is_heart:
            pygame.draw.circle(screen, colors.fade(colors.HEART, alpha), pos, 4)
        if seg.is_mouth:
            pygame.draw.circle(screen, colors.fade(colors.MOUTH, alpha), pos, 3)
        if seg.is_gripper:
            pygame.draw.circle(screen, colors.fade(colors.GRIPPER, alpha), pos, 7, 1)

    if creature.is_alive:
        _draw_bars(screen, creature)

    if debug:
        font = pygame.font.Font(None, 16)
        cx, cy = creature.center_position()
        txt = font.render(
            f"#{creature.id} g{creature.dna.generation} fit:{creature.calculate_fitness():.0f}",
            True,
            colors.TEXT,
        )
        screen.blit(txt, (cx + 12, cy - 10))


def draw_hud(screen: pygame.Surface, stats, speed: float, running: bool, target_population: int) -> None:
    font = pygame.font.Font(None, 26)

    oldest = "-" if stats.oldest_id is None else f"#{stats.oldest_id} ({stats.oldest_age:.0f}s)"
    lines = [
        f"Generation: {stats.generation}   Alive: {stats.living}",
        f"Best fitness: {stats.best_fitness:.0f}  Avg: {stats.avg_fitness:.0f}",
        f"Oldest: {oldest}",
        f"Sim time: {stats.total_time:.1f}s  Speed: x{speed:g}",
        f"Next population: {target_population}",
    ]
    if not running:
        lines.append("PAUSED (space to run)")

    y = 10
    for line in lines:
        txt = font.render(line, True, colors.TEXT)
        screen.blit(txt, (12, y))
        y += 22


def draw_event_log(screen: pygame.Surface, entries: List[LogEntry]) -> None:
    font = pygame.font.Font(None, 20)
    lines = [(e.message, colors.LOG_KIND.get(e.kind, colors.TEXT_DIM)) for e in entries]

    y = screen.get_height() - 10 - 18 * len(lines)
    for text, col in lines:
        txt = font.render(text, True, col)
        screen.blit(txt, (12, y))
        y += 18
