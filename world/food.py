"""
creature_evolution module: world/food.py

Power-ups are the only food in the arena:
- HEALTH (green): static pickup, restores 50 food + health
- SUPER (red): loose pickup that runs away from nearby creatures, restores 150
The field keeps a fixed number alive and replaces collected ones.
"""

from __future__ import annotations
import logging
import math
import random
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Tuple

import config
from organism.nodes import Circle
from world.physics import Body, PhysicsWorld

if TYPE_CHECKING:
    from organism.creature import Creature

logger = logging.getLogger(__name__)


class PowerUpKind(Enum):
    HEALTH = "health"
    SUPER = "super"


POWER_UP_RADIUS = {PowerUpKind.HEALTH: 12.0, PowerUpKind.SUPER: 18.0}
POWER_UP_RESTORE = {PowerUpKind.HEALTH: 50.0, PowerUpKind.SUPER: 150.0}


class PowerUp:
    def __init__(
        self,
        physics: PhysicsWorld,
        x: float,
        y: float,
        power_up_id: int,
        kind: PowerUpKind = PowerUpKind.HEALTH,
    ):
        self.physics = physics
        self.id = power_up_id
        self.kind = kind
        self.radius = POWER_UP_RADIUS[kind]
        self.restore = POWER_UP_RESTORE[kind]
        self.collected = False

        self.body = Body(
            shape=Circle(radius=self.radius),
            x=x,
            y=y,
            mass=1.0,
            friction=0.0,
            friction_static=0.0,
            friction_air=0.1,
            restitution=0.0,
            is_static=kind != PowerUpKind.SUPER,
            is_sensor=True,
            label="powerup",
            payload=self,
        )
        physics.add_body(self.body)

    @property
    def position(self) -> Tuple[float, float]:
        return self.body.position

    def update(self, creatures: Iterable["Creature"]) -> None:
        """Super pickups drift away from the creatures crowding them."""
        if self.kind != PowerUpKind.SUPER or self.collected:
            return

        reach = config.SUPER_FLEE_RADIUS
        fx = fy = 0.0
        count = 0
        for creature in creatures:
            if not creature.is_alive:
                continue
            cx, cy = creature.center_position()
            dx = self.body.x - cx
            dy = self.body.y - cy
            dist = math.hypot(dx, dy)
            if dist >= reach or dist <= 1e-9:
                continue
            fx += dx / dist * (reach - dist)
            fy += dy / dist * (reach - dist)
            count += 1

        if count:
            self.physics.apply_force(
                self.body,
                fx / count * config.SUPER_FLEE_FORCE,
                fy / count * config.SUPER_FLEE_FORCE,
            )

    def collect(self, creature: "Creature") -> bool:
        if self.collected:
            return False
        self.collected = True
        creature.restore_health(self.restore)
        self.physics.remove_body(self.body)
        logger.debug("Creature #%d collected %s power-up #%d", creature.id, self.kind.value, self.id)
        return True

    def destroy(self) -> None:
        self.physics.remove_body(self.body)


class PowerUpField:
    def __init__(
        self,
        physics: PhysicsWorld,
        w: int,
        h: int,
        max_power_ups: int = config.MAX_POWER_UPS,
        rng=None,
    ):
        self.physics = physics
        self.w = w
        self.h = h
        self.max_power_ups = max_power_ups
        self.rng = rng or random
        self.power_ups: List[PowerUp] = []
        self.next_id = 0

    def spawn(self) -> PowerUp:
        margin = config.POWER_UP_MARGIN
        x = margin + self.rng.random() * max(0.0, self.w - margin * 2)
        y = margin + self.rng.random() * max(0.0, self.h - margin * 2)
        kind = PowerUpKind.SUPER if self.rng.random() < config.SUPER_POWER_UP_CHANCE else PowerUpKind.HEALTH

        power_up = PowerUp(self.physics, x, y, self.next_id, kind)
        self.next_id += 1
        self.power_ups.append(power_up)
        return power_up

    def spawn_initial(self) -> None:
        while len(self.power_ups) < self.max_power_ups:
            self.spawn()

    def update(self, creatures: Iterable["Creature"]) -> None:
        creatures = list(creatures)
        for power_up in self.power_ups:
            power_up.update(creatures)

    def replenish(self) -> int:
        """Drop collected power-ups and spawn replacements. Returns how many."""
        before = len(self.power_ups)
        self.power_ups = [p for p in self.power_ups if not p.collected]
        missing = before - len(self.power_ups)
        for _ in range(missing):
            self.spawn()
        if missing:
            logger.debug("Respawned %d power-up(s)", missing)
        return missing

    def clear(self) -> None:
        for power_up in self.power_ups:
            power_up.destroy()
        self.power_ups = []

    def reset(self) -> None:
        self.clear()
        self.spawn_initial()

    def resize(self, w: int, h: int) -> None:
        self.w = w
        self.h = h
