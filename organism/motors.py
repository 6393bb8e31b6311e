"""
creature_evolution module: organism/motors.py

Joint motors: each joint constraint oscillates its length around the gene's
rest length. Sensor readings bend amplitude, frequency and phase through
the genome's weight matrix. Modulated values live on MotorState only,
the genome keeps its base pattern.
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import List, Sequence

import config
from organism.edges import JointGene, MotorPattern
from organism.genome import MotorWeight, clamp
from world.physics import Body, DistanceConstraint


@dataclass
class MotorState:
    joint_index: int
    constraint: DistanceConstraint
    base: MotorPattern
    rest_length: float
    min_length: float
    max_length: float

    amplitude: float = 0.0
    frequency: float = 0.0
    phase: float = 0.0

    @staticmethod
    def from_gene(joint_index: int, gene: JointGene, constraint: DistanceConstraint) -> "MotorState":
        base = gene.motor.copy()
        return MotorState(
            joint_index=joint_index,
            constraint=constraint,
            base=base,
            rest_length=gene.rest_length,
            min_length=gene.min_length,
            max_length=gene.max_length,
            amplitude=base.amplitude,
            frequency=base.frequency,
            phase=base.phase,
        )


def modulate_motors(
    motors: Sequence[MotorState],
    readings: Sequence[float],
    weights: Sequence[Sequence[MotorWeight]],
) -> None:
    for motor in motors:
        j = motor.joint_index
        amp_mod = freq_mod = phase_mod = 0.0
        for s, reading in enumerate(readings):
            if s >= len(weights):
                break
            row = weights[s]
            if j >= len(row):
                continue
            w = row[j]
            amp_mod += reading * w.amplitude_mod
            freq_mod += reading * w.frequency_mod
            phase_mod += reading * w.phase_mod

        motor.amplitude = clamp(
            motor.base.amplitude + amp_mod * config.AMPLITUDE_MOD_GAIN, *config.AMPLITUDE_RANGE
        )
        motor.frequency = clamp(motor.base.frequency + freq_mod, *config.FREQUENCY_RANGE)
        motor.phase = motor.base.phase + phase_mod * config.PHASE_MOD_GAIN


def target_length(motor: MotorState, sim_time: float) -> float:
    wave = math.sin(2 * math.pi * motor.frequency * sim_time + motor.phase)
    return clamp(motor.rest_length + motor.amplitude * wave, motor.min_length, motor.max_length)


def update_motors(motors: Sequence[MotorState], sim_time: float) -> None:
    for motor in motors:
        motor.constraint.length = target_length(motor, sim_time)


def _set_grip(body: Body, sticky: bool) -> None:
    friction, friction_static = config.STICKY_FRICTION if sticky else config.SLIPPERY_FRICTION
    body.friction = friction
    body.friction_static = friction_static


def apply_sticky_feet(motors: Sequence[MotorState], bodies: Sequence[Body], sim_time: float) -> None:
    """
    Inchworm gait: the front grips while the body pulls in,
    the back grips while it pushes out.
    """
    if not motors or not bodies:
        return
    lead = motors[0]
    extending = math.cos(2 * math.pi * lead.frequency * sim_time + lead.phase) > 0
    _set_grip(bodies[0], not extending)
    _set_grip(bodies[-1], extending)


def update_memory(memory: List[float], readings: Sequence[float]) -> None:
    total = sum(readings)
    for i in range(len(memory)):
        memory[i] = memory[i] * 0.95 + total * (i + 1) * 0.1 * 0.05
