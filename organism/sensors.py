"""
creature_evolution module: organism/sensors.py

Eyes and feelers. A sensor reports how close the nearest living creature is
(1 = touching, 0 = nothing in range). Eyes only see inside their cone,
feelers sense all around.
"""

from __future__ import annotations
import math
from typing import TYPE_CHECKING, Iterable, List, Optional

import config
from organism.genome import SensorGene, SensorType

if TYPE_CHECKING:
    from organism.creature import Creature
    from world.physics import Body


def wrap_angle(a: float) -> float:
    while a > math.pi:
        a -= 2 * math.pi
    while a < -math.pi:
        a += 2 * math.pi
    return a


def in_view(sensor: SensorGene, body: "Body", dx: float, dy: float) -> bool:
    if sensor.type != SensorType.EYE:
        return True
    facing = body.angle + sensor.angle
    rel = wrap_angle(math.atan2(dy, dx) - facing)
    return abs(rel) <= math.radians(sensor.fov) / 2


def read_sensor(
    sensor: SensorGene,
    body: Optional["Body"],
    others: Iterable["Creature"],
) -> float:
    """
    Closer is stronger. A prettier target reads up to 30% stronger.
    """
    if body is None:
        return 0.0

    closest = None
    target_beauty = 0.0
    for other in others:
        if not other.is_alive:
            continue
        ox, oy = other.center_position()
        dx = ox - body.x
        dy = oy - body.y
        d = math.hypot(dx, dy)
        if d >= sensor.range:
            continue
        if not in_view(sensor, body, dx, dy):
            continue
        if closest is None or d < closest:
            closest = d
            target_beauty = other.dna.beauty

    if closest is None:
        return 0.0
    signal = (1.0 - closest / sensor.range) * (1.0 + target_beauty * config.BEAUTY_SIGNAL_BOOST)
    return min(1.0, signal)


def read_sensors(creature: "Creature") -> List[float]:
    """One reading per sensor gene, in gene order."""
    readings: List[float] = []
    for sensor in creature.dna.sensors:
        body = creature.body_for_segment(sensor.segment_id)
        if body is None and creature.bodies:
            body = creature.bodies[0]
        readings.append(read_sensor(sensor, body, creature.others))
    return readings
