"""
creature_evolution module: organism/genome.py

Genome (DNA) for a creature's body and controller.

Design goals:
- Plain value data: segments are an arena addressed by integer id, joints and
  sensors refer to segments by index, nothing holds object references
- Morphology (segments + joints) and behaviour (motor patterns + the
  sensor -> motor weight matrix) live side by side
- Every genetic operator returns a fresh genome and leaves its inputs alone

The weight matrix always has one row per sensor and one column per joint.
"""

from __future__ import annotations
import copy
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from organism.nodes import Circle, Rectangle, Shape, end_anchor
from organism.edges import JointGene, MotorPattern

Color = Tuple[int, int, int]


class SensorType(Enum):
    EYE = "eye"
    FEELER = "feeler"


@dataclass
class SegmentGene:
    id: int
    parent_id: Optional[int]
    shape: Shape
    mass: float
    color: Color
    attach_angle: float = 0.0
    is_heart: bool = False
    is_mouth: bool = False
    is_gripper: bool = False


@dataclass
class SensorGene:
    id: int
    type: SensorType
    segment_id: int
    angle: float
    range: float
    fov: float = 0.0  # degrees, eyes only


@dataclass
class MotorWeight:
    amplitude_mod: float = 0.0
    frequency_mod: float = 0.0
    phase_mod: float = 0.0


@dataclass
class Genome:
    segments: List[SegmentGene] = field(default_factory=list)
    joints: List[JointGene] = field(default_factory=list)
    sensors: List[SensorGene] = field(default_factory=list)
    sensor_motor_weights: List[List[MotorWeight]] = field(default_factory=list)

    generation: int = 0
    fitness: float = 0.0
    base_hue: float = 0.0
    beauty: float = 0.5
    memory_size: int = 2

    def clone(self) -> "Genome":
        return copy.deepcopy(self)

    def weights_consistent(self) -> bool:
        if len(self.sensor_motor_weights) != len(self.sensors):
            return False
        return all(len(row) == len(self.joints) for row in self.sensor_motor_weights)

    def repair_weights(self, rng=None) -> None:
        """Pad or truncate the weight matrix to sensors x joints (in-place)."""
        rng = rng or random
        rows = self.sensor_motor_weights[: len(self.sensors)]
        while len(rows) < len(self.sensors):
            rows.append([])
        for row in rows:
            del row[len(self.joints):]
            while len(row) < len(self.joints):
                row.append(random_weight(rng))
        self.sensor_motor_weights = rows


def clone_dna(dna: Genome) -> Genome:
    return dna.clone()


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def random_color(base_hue: Optional[float] = None, rng=None) -> Color:
    """HSL colour near ``base_hue`` (family resemblance), as an RGB triple."""
    rng = rng or random
    if base_hue is not None:
        hue = (base_hue + (rng.random() - 0.5) * 60) % 360
    else:
        hue = rng.random() * 360
    saturation = 0.6 + rng.random() * 0.3
    lightness = 0.5 + rng.random() * 0.2

    c = (1 - abs(2 * lightness - 1)) * saturation
    x = c * (1 - abs((hue / 60) % 2 - 1))
    m = lightness - c / 2

    if hue < 60:
        r, g, b = c, x, 0.0
    elif hue < 120:
        r, g, b = x, c, 0.0
    elif hue < 180:
        r, g, b = 0.0, c, x
    elif hue < 240:
        r, g, b = 0.0, x, c
    elif hue < 300:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x

    return (round((r + m) * 255), round((g + m) * 255), round((b + m) * 255))


def random_weight(rng=None) -> MotorWeight:
    rng = rng or random
    return MotorWeight(
        amplitude_mod=(rng.random() - 0.5) * 2,
        frequency_mod=(rng.random() - 0.5) * 1,
        phase_mod=(rng.random() - 0.5) * 0.5,
    )


def uniform(rng, bounds: Tuple[float, float]) -> float:
    lo, hi = bounds
    return lo + rng.random() * (hi - lo)


def random_sensor(
    sensor_id: int,
    segment_count: int,
    rng=None,
    *,
    eye_range: Tuple[float, float] = (100.0, 250.0),
    eye_fov: Tuple[float, float] = (30.0, 90.0),
    feeler_range: Tuple[float, float] = (30.0, 70.0),
) -> SensorGene:
    """
    Range and fov bounds are (lo, hi). Fresh genomes use wider bounds than
    the sensors added by mutation.
    """
    rng = rng or random
    is_eye = rng.random() < 0.6
    return SensorGene(
        id=sensor_id,
        type=SensorType.EYE if is_eye else SensorType.FEELER,
        segment_id=int(rng.random() * segment_count),
        angle=(rng.random() - 0.5) * math.pi,
        range=uniform(rng, eye_range) if is_eye else uniform(rng, feeler_range),
        fov=uniform(rng, eye_fov) if is_eye else 0.0,
    )


def random_shape(
    rng,
    *,
    radius: Tuple[float, float] = (10.0, 25.0),
    length: Tuple[float, float] = (25.0, 60.0),
    width: Tuple[float, float] = (8.0, 20.0),
) -> Shape:
    if rng.random() < 0.3:
        return Circle(radius=uniform(rng, radius))
    return Rectangle(length=uniform(rng, length), width=uniform(rng, width))


def generate_random_dna(
    rng=None,
    *,
    min_segments: int = 2,
    max_segments: int = 5,
    base_hue: Optional[float] = None,
    min_sensors: int = 1,
    max_sensors: int = 3,
) -> Genome:
    """
    Random genome: a linear chain of segments (heart first, mouth last),
    a few eyes/feelers, and a fully random sensor -> motor weight matrix.
    """
    rng = rng or random
    if base_hue is None:
        base_hue = rng.random() * 360

    segment_count = min_segments + int(rng.random() * (max_segments - min_segments + 1))

    segments: List[SegmentGene] = []
    for i in range(segment_count):
        segments.append(
            SegmentGene(
                id=i,
                parent_id=None if i == 0 else i - 1,
                attach_angle=0.0,
                shape=random_shape(rng),
                mass=0.8 + rng.random() * 1.5,
                color=random_color(base_hue, rng),
                is_heart=i == 0,
                is_mouth=i == segment_count - 1,
                is_gripper=rng.random() < 0.2,
            )
        )

    joints: List[JointGene] = []
    for i in range(segment_count - 1):
        joints.append(
            JointGene(
                seg_a=i,
                seg_b=i + 1,
                attach_point_a=end_anchor(segments[i].shape, -1.0),
                attach_point_b=end_anchor(segments[i + 1].shape, 1.0),
                rest_length=15 + rng.random() * 20,
                min_length=10.0,
                max_length=50.0,
                stiffness=0.3 + rng.random() * 0.5,
                motor=MotorPattern(
                    amplitude=3 + rng.random() * 8,
                    frequency=0.5 + rng.random() * 2.5,
                    phase=rng.random() * math.pi * 2,
                ),
            )
        )

    sensor_count = min_sensors + int(rng.random() * (max_sensors - min_sensors + 1))
    sensors = [random_sensor(i, segment_count, rng) for i in range(sensor_count)]

    weights = [[random_weight(rng) for _ in joints] for _ in sensors]

    return Genome(
        segments=segments,
        joints=joints,
        sensors=sensors,
        sensor_motor_weights=weights,
        generation=0,
        fitness=0.0,
        base_hue=base_hue,
        beauty=rng.random(),
        memory_size=2,
    )
