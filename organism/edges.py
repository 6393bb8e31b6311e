"""
creature_evolution module: organism/edges.py

Joints connect segments (by index) and drive them with an oscillating motor.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Tuple


@dataclass
class MotorPattern:
    amplitude: float
    frequency: float
    phase: float

    def copy(self) -> "MotorPattern":
        return MotorPattern(self.amplitude, self.frequency, self.phase)


@dataclass
class JointGene:
    seg_a: int
    seg_b: int
    attach_point_a: Tuple[float, float] = (0.0, 0.0)
    attach_point_b: Tuple[float, float] = (0.0, 0.0)
    rest_length: float = 25.0
    min_length: float = 10.0
    max_length: float = 50.0
    stiffness: float = 0.5
    motor: MotorPattern = field(default_factory=lambda: MotorPattern(5.0, 1.0, 0.0))

    def copy(self) -> "JointGene":
        return JointGene(
            seg_a=self.seg_a,
            seg_b=self.seg_b,
            attach_point_a=tuple(self.attach_point_a),
            attach_point_b=tuple(self.attach_point_b),
            rest_length=self.rest_length,
            min_length=self.min_length,
            max_length=self.max_length,
            stiffness=self.stiffness,
            motor=self.motor.copy(),
        )
