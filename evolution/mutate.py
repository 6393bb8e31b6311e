"""
creature_evolution module: evolution/mutate.py

Mutation and crossover operators for genomes. Both return new genomes;
inputs are never modified.
"""

from __future__ import annotations
import math
import random

from organism.nodes import Circle, Rectangle
from organism.edges import JointGene, MotorPattern
from organism.genome import (
    Genome,
    SegmentGene,
    SensorType,
    clamp,
    random_color,
    random_sensor,
    random_shape,
    random_weight,
)

MAX_SENSORS = 5
MAX_SEGMENTS = 8


def _jitter(rng, span: float) -> float:
    # uniform in [-span/2, span/2)
    return (rng.random() - 0.5) * span


def _mutate_segment(segment: SegmentGene, rate: float, beauty: float, rng) -> None:
    if rng.random() < rate:
        shape = segment.shape
        if isinstance(shape, Circle):
            shape.radius = clamp(shape.radius + _jitter(rng, 10), 5, 30)
        elif isinstance(shape, Rectangle):
            shape.length = clamp(shape.length + _jitter(rng, 15), 15, 70)
            shape.width = clamp(shape.width + _jitter(rng, 6), 5, 25)
        else:
            raise TypeError(f"Unknown segment shape: {shape!r}")
    if rng.random() < rate:
        segment.mass = clamp(segment.mass + _jitter(rng, 0.5), 0.3, 3)
    if rng.random() < rate * 0.5:
        # beautiful genomes drift lighter
        beauty_shift = (beauty - 0.5) * 50
        segment.color = tuple(
            int(clamp(c + math.floor(_jitter(rng, 40) + beauty_shift), 0, 255))
            for c in segment.color
        )
    if rng.random() < rate * 0.1:
        segment.is_gripper = not segment.is_gripper


def _mutate_joint(joint: JointGene, rate: float, rng) -> None:
    if rng.random() < rate:
        joint.rest_length = clamp(joint.rest_length + _jitter(rng, 10), 5, 60)
    if rng.random() < rate:
        joint.stiffness = clamp(joint.stiffness + _jitter(rng, 0.2), 0.1, 0.9)

    mp = joint.motor
    if rng.random() < rate * 1.5:
        mp.amplitude = clamp(mp.amplitude + _jitter(rng, 4), 0, 15)
    if rng.random() < rate * 1.5:
        mp.frequency = clamp(mp.frequency + _jitter(rng, 1), 0.1, 4)
    if rng.random() < rate * 1.5:
        mp.phase += _jitter(rng, math.pi * 0.5)


def _add_branch(mutated: Genome, rng) -> None:
    parent_idx = int(rng.random() * len(mutated.segments))
    new_id = len(mutated.segments)

    mutated.segments.append(
        SegmentGene(
            id=new_id,
            parent_id=parent_idx,
            attach_angle=_jitter(rng, math.pi),
            shape=random_shape(rng, radius=(8.0, 20.0), length=(20.0, 45.0), width=(6.0, 16.0)),
            mass=0.5 + rng.random() * 1,
            color=random_color(mutated.base_hue, rng),
            is_heart=False,
            is_mouth=rng.random() < 0.3,
            is_gripper=False,
        )
    )
    mutated.joints.append(
        JointGene(
            seg_a=parent_idx,
            seg_b=new_id,
            attach_point_a=(0.0, 0.0),
            attach_point_b=(0.0, 10.0),
            rest_length=15 + rng.random() * 15,
            min_length=8.0,
            max_length=40.0,
            stiffness=0.3 + rng.random() * 0.4,
            motor=MotorPattern(
                amplitude=2 + rng.random() * 6,
                frequency=0.5 + rng.random() * 2,
                phase=rng.random() * math.pi * 2,
            ),
        )
    )
    for row in mutated.sensor_motor_weights:
        row.append(random_weight(rng))


def mutate_dna(dna: Genome, rate: float = 0.1, rng=None) -> Genome:
    """
    Return a mutated clone of ``dna``.

    - Each numeric field gets an independent trial at ``rate`` (motor genes at
      1.5x, controller weights at 2x, colour at 0.5x) and is clamped.
    - Rarely adds a sensor (rate x 0.05) or a branch segment + joint
      (rate x 0.08); the weight matrix grows a row / column to match.
    """
    rng = rng or random
    mutated = dna.clone()

    for segment in mutated.segments:
        _mutate_segment(segment, rate, mutated.beauty, rng)

    if rng.random() < rate:
        mutated.beauty = clamp(mutated.beauty + _jitter(rng, 0.2), 0, 1)

    for joint in mutated.joints:
        _mutate_joint(joint, rate, rng)

    for sensor in mutated.sensors:
        if rng.random() < rate:
            sensor.angle += _jitter(rng, 0.5)
        if rng.random() < rate:
            sensor.range = clamp(sensor.range + _jitter(rng, 30), 20, 300)
        if sensor.type == SensorType.EYE and rng.random() < rate:
            sensor.fov = clamp(sensor.fov + _jitter(rng, 20), 10, 120)

    for row in mutated.sensor_motor_weights:
        for weight in row:
            if rng.random() < rate * 2:
                weight.amplitude_mod = clamp(weight.amplitude_mod + _jitter(rng, 0.4), -2, 2)
            if rng.random() < rate * 2:
                weight.frequency_mod = clamp(weight.frequency_mod + _jitter(rng, 0.2), -1, 1)
            if rng.random() < rate * 2:
                weight.phase_mod = clamp(weight.phase_mod + _jitter(rng, 0.2), -1, 1)

    if rng.random() < rate * 0.05 and len(mutated.sensors) < MAX_SENSORS and mutated.segments:
        mutated.sensors.append(
            random_sensor(
                len(mutated.sensors),
                len(mutated.segments),
                rng,
                eye_range=(100.0, 200.0),
                eye_fov=(40.0, 80.0),
                feeler_range=(30.0, 60.0),
            )
        )
        mutated.sensor_motor_weights.append([random_weight(rng) for _ in mutated.joints])

    if rng.random() < rate * 0.08 and 0 < len(mutated.segments) < MAX_SEGMENTS:
        _add_branch(mutated, rng)

    return mutated


def crossover_dna(dna1: Genome, dna2: Genome, rng=None) -> Genome:
    """
    Child takes one parent's whole structure (trees are never blended) and
    mixes motor timing joint-by-joint from both parents.
    """
    rng = rng or random
    child = (dna1 if rng.random() < 0.5 else dna2).clone()

    shared = min(len(child.joints), len(dna1.joints), len(dna2.joints))
    for i in range(shared):
        source = dna1 if rng.random() < 0.5 else dna2
        child.joints[i].motor = source.joints[i].motor.copy()

    child.base_hue = ((dna1.base_hue + dna2.base_hue) / 2 + _jitter(rng, 30)) % 360
    return child
