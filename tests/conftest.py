"""Shared fixtures: seeded rng, an empty physics world and small hand-built genomes."""

import random

import pytest

from organism.edges import JointGene, MotorPattern
from organism.genome import Genome, MotorWeight, SegmentGene, SensorGene, SensorType
from organism.nodes import Circle
from world.physics import PhysicsWorld


class RecordingSink:
    """Event sink that remembers every call."""

    def __init__(self):
        self.births = []
        self.deaths = []
        self.damage = []
        self.stats = []

    def on_birth(self, creature, parents):
        self.births.append((creature, tuple(parents)))

    def on_death(self, creature, killer, cause):
        self.deaths.append((creature, killer, cause))

    def on_damage(self, attacker, victim, amount):
        self.damage.append((attacker, victim, amount))

    def on_stats(self, stats):
        self.stats.append(stats)


def build_genome(segments=1, sensors=(), radius=10.0, mass=1.0, amplitude=5.0, frequency=1.0, phase=0.0):
    """
    A straight chain of circle segments (heart first, mouth last) with one
    joint per link and zero controller weights.
    """
    segs = [
        SegmentGene(
            id=i,
            parent_id=None if i == 0 else i - 1,
            shape=Circle(radius=radius),
            mass=mass,
            color=(100, 150, 200),
            is_heart=i == 0,
            is_mouth=i == segments - 1,
        )
        for i in range(segments)
    ]
    joints = [
        JointGene(
            seg_a=i,
            seg_b=i + 1,
            attach_point_a=(0.0, radius),
            attach_point_b=(0.0, -radius),
            rest_length=20.0,
            min_length=10.0,
            max_length=50.0,
            stiffness=0.5,
            motor=MotorPattern(amplitude=amplitude, frequency=frequency, phase=phase),
        )
        for i in range(segments - 1)
    ]
    sensor_genes = [
        SensorGene(
            id=i,
            type=kind,
            segment_id=0,
            angle=0.0,
            range=100.0,
            fov=90.0 if kind == SensorType.EYE else 0.0,
        )
        for i, kind in enumerate(sensors)
    ]
    weights = [[MotorWeight() for _ in joints] for _ in sensor_genes]
    return Genome(
        segments=segs,
        joints=joints,
        sensors=sensor_genes,
        sensor_motor_weights=weights,
        base_hue=200.0,
        beauty=0.5,
    )


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def physics():
    return PhysicsWorld()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def make_genome():
    return build_genome
