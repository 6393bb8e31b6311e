"""
creature_evolution module: organism/creature.py

A living creature: physics bodies + joint motors built from a genome.

Life cycle is one-way ALIVE -> DEAD. Dead creatures stay in the world for a
moment, fade out, then flag themselves for removal (can_destroy).
Food drains over time (starvation), health only drops from combat.
"""

from __future__ import annotations
import logging
import math
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

import config
from organism.events import EventSink, NullEventSink
from organism.genome import Genome
from organism.motors import (
    MotorState,
    apply_sticky_feet,
    modulate_motors,
    update_memory,
    update_motors,
)
from organism.nodes import half_extent
from organism.sensors import read_sensors
from world.physics import Body, Composite, DistanceConstraint, PhysicsWorld

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class CreatureState(Enum):
    ALIVE = "alive"
    DEAD = "dead"


def age_attack_bonus(age: float) -> float:
    """1.0 at birth, 2.0 after four hours of life."""
    return 1.0 + min(age / config.AGE_BONUS_FULL_SECONDS, 1.0)


def age_defense_multiplier(age: float) -> float:
    """Damage taken scales from 1.0 down to 0.5 with age."""
    return 1.0 - 0.5 * min(age / config.AGE_BONUS_FULL_SECONDS, 1.0)


class Creature:
    def __init__(
        self,
        dna: Genome,
        world: PhysicsWorld,
        x: float,
        y: float,
        creature_id: int,
        events: Optional[EventSink] = None,
    ):
        self.id = creature_id
        self.dna = dna
        self.world: Optional[PhysicsWorld] = world
        self.events = events or NullEventSink()

        self.state = CreatureState.ALIVE
        self.food = config.START_FOOD
        self.health = config.START_HEALTH
        self.age = 0.0
        self.sim_time = 0.0
        self.fade_alpha = 1.0
        self.death_time = 0.0
        self.can_destroy = False
        self.death_cause: Optional[str] = None
        self.last_reproduction_time = 0.0

        # fitness bookkeeping
        self.start_position: Point = (x, y)
        self.damage_dealt = 0.0
        self.damage_taken = 0.0
        self.kills = 0
        self.power_ups_collected = 0

        self.memory: List[float] = [0.0] * max(0, dna.memory_size)
        self.sensor_readings: List[float] = [0.0] * len(dna.sensors)
        self.others: List["Creature"] = []

        self.bodies: List[Body] = []
        self.motors: List[MotorState] = []
        self.composite: Optional[Composite] = Composite(label=f"creature_{creature_id}")

        self._build(x, y)
        world.add_composite(self.composite)

    def __repr__(self) -> str:
        return f"Creature(id={self.id}, state={self.state.value}, gen={self.dna.generation})"

    def _build(self, x: float, y: float) -> None:
        by_id = {seg.id: seg for seg in self.dna.segments}
        positions = {}
        for i, seg in enumerate(self.dna.segments):
            bx, by = x, y
            if seg.parent_id is not None and seg.parent_id in positions:
                px, py = positions[seg.parent_id]
                parent = by_id[seg.parent_id]
                offset = half_extent(parent.shape) + 20
                bx = px + math.sin(seg.attach_angle) * offset
                by = py + math.cos(seg.attach_angle) * offset
            else:
                by += i * 40

            body = Body(
                shape=seg.shape,
                x=bx,
                y=by,
                mass=seg.mass,
                friction=0.8,
                friction_air=0.02,
                restitution=0.2,
                label=f"creature_{self.id}_seg_{seg.id}",
                owner=self,
                segment=seg,
            )
            self.bodies.append(body)
            self.composite.bodies.append(body)
            positions[seg.id] = (bx, by)

        for j, joint in enumerate(self.dna.joints):
            body_a = self.body_for_segment(joint.seg_a)
            body_b = self.body_for_segment(joint.seg_b)
            if body_a is None or body_b is None:
                continue
            constraint = DistanceConstraint(
                body_a=body_a,
                body_b=body_b,
                point_a=tuple(joint.attach_point_a),
                point_b=tuple(joint.attach_point_b),
                length=joint.rest_length,
                stiffness=joint.stiffness,
                damping=0.1,
                label=f"creature_{self.id}_joint",
            )
            self.composite.constraints.append(constraint)
            self.motors.append(MotorState.from_gene(j, joint, constraint))

    # ---- queries ----

    @property
    def is_alive(self) -> bool:
        return self.state == CreatureState.ALIVE

    @property
    def constraints(self) -> List[DistanceConstraint]:
        return [m.constraint for m in self.motors]

    def body_for_segment(self, index: int) -> Optional[Body]:
        if 0 <= index < len(self.bodies):
            return self.bodies[index]
        return None

    def in_world(self) -> bool:
        return (
            self.world is not None
            and self.composite is not None
            and self.world.has_composite(self.composite)
        )

    def set_others(self, creatures: Iterable["Creature"]) -> None:
        self.others = [c for c in creatures if c is not self]

    def center_position(self) -> Point:
        """Mass-weighted centroid of all bodies."""
        total = sum(b.mass for b in self.bodies)
        if not self.bodies or total <= 0:
            return self.start_position
        cx = sum(b.x * b.mass for b in self.bodies) / total
        cy = sum(b.y * b.mass for b in self.bodies) / total
        return (cx, cy)

    def mouth_position(self) -> Point:
        for body in reversed(self.bodies):
            if body.segment is not None and body.segment.is_mouth:
                return body.position
        if self.bodies:
            return self.bodies[-1].position
        return self.start_position

    def heart_position(self) -> Point:
        for body in self.bodies:
            if body.segment is not None and body.segment.is_heart:
                return body.position
        if self.bodies:
            return self.bodies[0].position
        return self.start_position

    def gripper_bodies(self) -> List[Body]:
        return [b for b in self.bodies if b.segment is not None and b.segment.is_gripper]

    def distance_travelled(self) -> float:
        cx, cy = self.center_position()
        return math.hypot(cx - self.start_position[0], cy - self.start_position[1])

    def calculate_fitness(self) -> float:
        fitness = (
            self.distance_travelled() * config.FITNESS_DISTANCE
            + self.kills * config.FITNESS_KILL
            + self.damage_dealt * config.FITNESS_DAMAGE_DEALT
            - self.damage_taken * config.FITNESS_DAMAGE_TAKEN
        )
        return max(0.0, fitness)

    # ---- per-tick ----

    def update(self, dt: float) -> None:
        if not self.is_alive:
            self.death_time += dt
            if self.death_time > config.DEATH_HOLD_SECONDS:
                self.fade_alpha -= dt * config.FADE_PER_SEC
                if self.fade_alpha <= 0:
                    self.fade_alpha = 0.0
                    self.can_destroy = True
            return

        self.age += dt
        self.sim_time += dt

        self.food -= config.FOOD_DRAIN_PER_SEC * dt
        if self.food <= 0:
            self.food = 0.0
            self.die(None, "starvation")
            return

        if self.world is not None:
            self.motors = [m for m in self.motors if self.world.constraint_valid(m.constraint)]

        self.sensor_readings = read_sensors(self)
        modulate_motors(self.motors, self.sensor_readings, self.dna.sensor_motor_weights)
        update_motors(self.motors, self.sim_time)
        apply_sticky_feet(self.motors, self.bodies, self.sim_time)
        update_memory(self.memory, self.sensor_readings)

    # ---- combat + metabolism ----

    def take_damage(self, amount: float, attacker: Optional["Creature"] = None) -> None:
        if not self.is_alive:
            return
        self.health -= amount
        self.damage_taken += amount
        if attacker is not None:
            attacker.damage_dealt += amount
        self.events.on_damage(attacker, self, amount)

        if self.health <= 0:
            self.health = 0.0
            self.die(attacker, "combat")

    def restore_health(self, amount: float) -> None:
        """Power-ups and kills refill both food and health."""
        if not self.is_alive:
            return
        self.food = min(config.MAX_FOOD, self.food + amount)
        self.health = min(config.MAX_HEALTH, self.health + amount)
        self.power_ups_collected += 1

    def die(self, killer: Optional["Creature"] = None, cause: str = "combat") -> None:
        if not self.is_alive:
            return
        self.state = CreatureState.DEAD
        self.food = 0.0
        self.health = 0.0
        self.death_time = 0.0
        self.death_cause = cause

        if killer is not None:
            killer.kills += 1
            killer.health = config.MAX_HEALTH
            killer.food = config.MAX_FOOD

        for body in self.bodies:
            body.friction = 0.5
            body.friction_air = 0.2

        self.events.on_death(self, killer, cause)

    def destroy(self) -> None:
        """Take the creature out of the physics world. Safe to call twice."""
        if self.in_world():
            self.world.remove_composite(self.composite)
        self.motors = []
        self.bodies = []
        self.composite = None
        self.world = None


def living(creatures: Sequence[Creature]) -> List[Creature]:
    return [c for c in creatures if c.is_alive]
