"""
creature_evolution module: world/world.py

Arena + combat coordinator:
- owns the physics world, its walls and obstacles, and the power-up field
- tracks registered creatures and keeps them in step with the physics world
- turns collision-start events into pickups, mouth->heart kills and impact damage
"""

from __future__ import annotations
import logging
import math
import random
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

import config
from organism.creature import age_attack_bonus, age_defense_multiplier
from organism.events import EventSink, NullEventSink
from organism.nodes import Circle, Rectangle
from world.food import PowerUp, PowerUpField
from world.physics import Body, CollisionEvent, PhysicsWorld

if TYPE_CHECKING:
    from organism.creature import Creature

logger = logging.getLogger(__name__)


def impact_damage(speed: float, mass_a: float, mass_b: float) -> float:
    """Total damage of an impact before it is split between the two creatures."""
    if speed <= config.DAMAGE_THRESHOLD:
        return 0.0
    return (speed - config.DAMAGE_THRESHOLD) * (mass_a + mass_b) * config.DAMAGE_MULTIPLIER


class World:
    def __init__(
        self,
        w: int,
        h: int,
        rng=None,
        events: Optional[EventSink] = None,
        obstacle_count: int = 5,
    ):
        self.w = w
        self.h = h
        self.rng = rng or random
        self.events = events or NullEventSink()

        self.physics = PhysicsWorld(gravity=(0.0, 0.0))
        self.walls: List[Body] = []
        self.obstacles: List[Body] = []
        self.creatures: Dict[int, "Creature"] = {}
        self.power_ups = PowerUpField(self.physics, w, h, rng=self.rng)

        self.create_walls()
        self.create_obstacles(obstacle_count)
        self.physics.on_collision_start(self.handle_collision)

    # ---- arena ----

    def create_walls(self) -> None:
        for wall in self.walls:
            self.physics.remove_body(wall)

        t = config.WALL_THICKNESS
        w, h = self.w, self.h
        placements = [
            (w / 2, -t / 2, Rectangle(length=t, width=w + t * 2)),
            (w / 2, h + t / 2, Rectangle(length=t, width=w + t * 2)),
            (-t / 2, h / 2, Rectangle(length=h + t * 2, width=t)),
            (w + t / 2, h / 2, Rectangle(length=h + t * 2, width=t)),
        ]
        self.walls = [
            self.physics.add_body(
                Body(
                    shape=shape,
                    x=x,
                    y=y,
                    is_static=True,
                    friction=0.1,
                    restitution=config.WALL_RESTITUTION,
                    label="boundary",
                )
            )
            for x, y, shape in placements
        ]

    def create_obstacles(self, count: int) -> None:
        for obstacle in self.obstacles:
            self.physics.remove_body(obstacle)
        self.obstacles = []

        for _ in range(count):
            x = 100 + self.rng.random() * (self.w - 200)
            y = 100 + self.rng.random() * (self.h - 200)
            size = 30 + self.rng.random() * 50
            if self.rng.random() > 0.5:
                shape, angle = Circle(radius=size / 2), 0.0
            else:
                shape, angle = Rectangle(length=size, width=size), self.rng.random() * math.pi
            body = Body(
                shape=shape,
                x=x,
                y=y,
                angle=angle,
                is_static=True,
                friction=0.1,
                restitution=0.0,
                label="obstacle",
            )
            self.obstacles.append(self.physics.add_body(body))

    def resize(self, w: int, h: int) -> None:
        self.w = w
        self.h = h
        self.create_walls()
        self.power_ups.resize(w, h)

    # ---- creature registry ----

    def register_creature(self, creature: "Creature") -> None:
        self.creatures[creature.id] = creature

    def unregister_creature(self, creature: "Creature") -> None:
        self.creatures.pop(creature.id, None)

    def living_creatures(self) -> List["Creature"]:
        return [c for c in self.creatures.values() if c.is_alive]

    def clear_creatures(self) -> None:
        for creature in self.creatures.values():
            creature.destroy()
        self.creatures.clear()

    # ---- combat ----

    def check_mouth_heart(self, attacker: "Creature", victim: "Creature") -> bool:
        """Attacker eats the victim when its mouth reaches the victim's heart."""
        if not (attacker.is_alive and victim.is_alive):
            return False
        mx, my = attacker.mouth_position()
        hx, hy = victim.heart_position()
        if math.hypot(mx - hx, my - hy) >= config.MOUTH_HEART_RADIUS:
            return False
        victim.die(attacker, "eaten")
        attacker.restore_health(config.EAT_REWARD)
        return True

    def handle_collision(self, event: CollisionEvent) -> None:
        a, b = event.body_a, event.body_b

        for pickup, other in ((a, b), (b, a)):
            if isinstance(pickup.payload, PowerUp) and other.owner is not None:
                pickup.payload.collect(other.owner)
                return

        creature_a, creature_b = a.owner, b.owner
        if creature_a is None or creature_b is None or creature_a is creature_b:
            return
        if not (creature_a.is_alive and creature_b.is_alive):
            return

        self.check_mouth_heart(creature_a, creature_b)
        self.check_mouth_heart(creature_b, creature_a)
        if not (creature_a.is_alive and creature_b.is_alive):
            return

        base = impact_damage(event.impact_speed, a.mass, b.mass)
        if base <= 0:
            return
        # both sides get hurt, older creatures hit harder and take less
        to_a = base * 0.5 * age_attack_bonus(creature_b.age) * age_defense_multiplier(creature_a.age)
        to_b = base * 0.5 * age_attack_bonus(creature_a.age) * age_defense_multiplier(creature_b.age)
        creature_a.take_damage(to_a, creature_b)
        creature_b.take_damage(to_b, creature_a)

    def apply_gripper_attraction(self, power_ups: Iterable[PowerUp]) -> None:
        reach2 = config.GRIPPER_REACH * config.GRIPPER_REACH
        grippers = [b for c in self.living_creatures() for b in c.gripper_bodies()]
        if not grippers:
            return
        for power_up in power_ups:
            if power_up.collected:
                continue
            px, py = power_up.position
            for body in grippers:
                dx = body.x - px
                dy = body.y - py
                if dx * dx + dy * dy < reach2:
                    self.physics.apply_force(
                        power_up.body, dx * config.GRIPPER_FORCE, dy * config.GRIPPER_FORCE
                    )

    # ---- stepping ----

    def _evict(self, creature: "Creature") -> None:
        self.creatures.pop(creature.id, None)

    def update(self, dt: float) -> None:
        for creature in list(self.creatures.values()):
            if not creature.in_world():
                self._evict(creature)

        purged = self.physics.purge_dangling()
        if purged:
            logger.debug("Purged %d dangling constraint(s)", purged)

        try:
            self.physics.step(min(dt, config.MAX_SUBSTEP_SECONDS))
        except Exception:
            logger.exception("Physics step failed, clearing creatures from the world")
            self.recover_from_error()
            return

        # dead ones too, they still need to fade out
        for creature in list(self.creatures.values()):
            if not creature.in_world():
                self._evict(creature)
                continue
            try:
                creature.update(dt)
            except Exception:
                logger.warning("Creature #%d failed to update, removing it", creature.id, exc_info=True)
                self._evict(creature)
                creature.can_destroy = True

    def recover_from_error(self) -> None:
        for creature in list(self.creatures.values()):
            creature.destroy()
            creature.can_destroy = True
        self.creatures.clear()
        purged = self.physics.purge_dangling()
        logger.warning("Recovered physics world (%d orphaned constraint(s) removed)", purged)
