"""DNA model: random genomes, cloning, weight matrix shape and shape helpers."""

import math
import random

import pytest

from organism.genome import (
    Genome,
    SensorType,
    clone_dna,
    generate_random_dna,
    random_color,
    random_sensor,
    random_shape,
    uniform,
)
from organism.nodes import Circle, Rectangle, area, collision_radius, half_extent, shape_name


class TestGenerateRandomDna:
    def test_same_seed_same_genome(self):
        """A seeded rng makes generation deterministic."""
        a = generate_random_dna(random.Random(42))
        b = generate_random_dna(random.Random(42))
        assert a == b

    def test_chain_structure(self, rng):
        """Linear chain, heart first, mouth last, ids match positions."""
        for _ in range(50):
            dna = generate_random_dna(rng)
            n = len(dna.segments)
            assert 2 <= n <= 5
            assert dna.segments[0].is_heart
            assert dna.segments[-1].is_mouth
            assert [s.id for s in dna.segments] == list(range(n))
            assert dna.segments[0].parent_id is None
            assert all(dna.segments[i].parent_id == i - 1 for i in range(1, n))
            assert [(j.seg_a, j.seg_b) for j in dna.joints] == [(i, i + 1) for i in range(n - 1)]

    def test_value_ranges(self, rng):
        """Generated values stay inside their documented ranges."""
        for _ in range(50):
            dna = generate_random_dna(rng)
            for seg in dna.segments:
                assert 0.8 <= seg.mass <= 2.3
                assert all(0 <= c <= 255 for c in seg.color)
            for joint in dna.joints:
                assert 15 <= joint.rest_length <= 35
                assert 0.3 <= joint.stiffness <= 0.8
                assert 3 <= joint.motor.amplitude <= 11
                assert 0.5 <= joint.motor.frequency <= 3
                assert 0 <= joint.motor.phase <= 2 * math.pi
            assert 1 <= len(dna.sensors) <= 3
            for sensor in dna.sensors:
                assert 0 <= sensor.segment_id < len(dna.segments)
                assert abs(sensor.angle) <= math.pi / 2
                if sensor.type == SensorType.EYE:
                    assert 100 <= sensor.range <= 250
                    assert 30 <= sensor.fov <= 90
                else:
                    assert 30 <= sensor.range <= 70
                    assert sensor.fov == 0
            assert 0 <= dna.beauty <= 1
            assert dna.memory_size == 2
            assert dna.generation == 0

    def test_weight_matrix_matches_sensors_and_joints(self, rng):
        """One row per sensor, one column per joint."""
        for _ in range(30):
            dna = generate_random_dna(rng)
            assert dna.weights_consistent()
            assert len(dna.sensor_motor_weights) == len(dna.sensors)
            assert all(len(row) == len(dna.joints) for row in dna.sensor_motor_weights)

    def test_base_hue_is_kept(self, rng):
        """An explicit base hue is stored on the genome."""
        dna = generate_random_dna(rng, base_hue=120.0)
        assert dna.base_hue == 120.0


class TestClone:
    def test_clone_is_independent(self, rng):
        """Changing a clone never leaks back into its source."""
        dna = generate_random_dna(rng)
        copy = clone_dna(dna)
        assert copy == dna

        copy.segments[0].mass = 99.0
        copy.joints[0].motor.amplitude = 99.0
        copy.sensors[0].range = 1.0
        if copy.sensor_motor_weights[0]:
            copy.sensor_motor_weights[0][0].amplitude_mod = 9.0
        copy.segments[0].shape = Circle(radius=1.0)

        assert dna.segments[0].mass != 99.0
        assert dna.joints[0].motor.amplitude != 99.0
        assert dna.sensors[0].range != 1.0
        assert dna.sensor_motor_weights[0] == [] or dna.sensor_motor_weights[0][0].amplitude_mod != 9.0
        assert dna.segments[0].shape != Circle(radius=1.0)


class TestRepairWeights:
    def test_pads_missing_rows_and_columns(self, make_genome):
        """Missing entries are filled with random weights."""
        dna = make_genome(segments=3, sensors=(SensorType.EYE, SensorType.FEELER))
        dna.sensor_motor_weights = [[]]
        assert not dna.weights_consistent()
        dna.repair_weights(random.Random(1))
        assert dna.weights_consistent()
        assert len(dna.sensor_motor_weights) == 2

    def test_truncates_extra_entries(self, make_genome):
        """Extra rows and columns are dropped."""
        dna = make_genome(segments=2, sensors=(SensorType.EYE,))
        extra = dna.sensor_motor_weights[0] * 3
        dna.sensor_motor_weights = [list(extra), list(extra), list(extra)]
        dna.repair_weights()
        assert dna.weights_consistent()
        assert len(dna.sensor_motor_weights) == 1
        assert len(dna.sensor_motor_weights[0]) == 1

    def test_no_sensors_no_joints(self):
        """An empty genome repairs to an empty matrix."""
        dna = Genome()
        dna.sensor_motor_weights = [[]]
        dna.repair_weights()
        assert dna.sensor_motor_weights == []


def test_random_color_near_base_hue(rng):
    """Colours are valid RGB triples."""
    for _ in range(100):
        color = random_color(10.0, rng)
        assert len(color) == 3
        assert all(0 <= c <= 255 for c in color)



class TestRandomParts:
    def test_uniform_spans_lo_to_hi(self):
        class Fixed:
            def __init__(self, value):
                self.value = value

            def random(self):
                return self.value

        assert uniform(Fixed(0.0), (30.0, 70.0)) == 30.0
        assert uniform(Fixed(0.5), (30.0, 70.0)) == 50.0
        assert uniform(Fixed(0.999), (30.0, 70.0)) < 70.0

    def test_sensor_stays_inside_given_bounds(self, rng):
        seen = set()
        for i in range(200):
            sensor = random_sensor(
                i, 3, rng,
                eye_range=(150.0, 160.0), eye_fov=(40.0, 45.0), feeler_range=(20.0, 25.0),
            )
            seen.add(sensor.type)
            assert 0 <= sensor.segment_id < 3
            if sensor.type == SensorType.EYE:
                assert 150.0 <= sensor.range < 160.0
                assert 40.0 <= sensor.fov < 45.0
            else:
                assert 20.0 <= sensor.range < 25.0
                assert sensor.fov == 0.0
        assert seen == {SensorType.EYE, SensorType.FEELER}

    def test_shape_stays_inside_given_bounds(self, rng):
        for _ in range(200):
            shape = random_shape(rng, radius=(5.0, 6.0), length=(30.0, 31.0), width=(9.0, 10.0))
            if isinstance(shape, Circle):
                assert 5.0 <= shape.radius < 6.0
            else:
                assert 30.0 <= shape.length < 31.0
                assert 9.0 <= shape.width < 10.0

class TestShapes:
    def test_circle_helpers(self):
        c = Circle(radius=10.0)
        assert shape_name(c) == "circle"
        assert area(c) == pytest.approx(math.pi * 100)
        assert half_extent(c) == 10.0
        assert collision_radius(c) == 10.0

    def test_rectangle_helpers(self):
        r = Rectangle(length=40.0, width=10.0)
        assert shape_name(r) == "rectangle"
        assert area(r) == 400.0
        assert half_extent(r) == 20.0
        assert collision_radius(r) == 12.5

    def test_unknown_shape_rejected(self):
        """Every helper raises on something that is not a shape."""
        for fn in (shape_name, area, half_extent, collision_radius):
            with pytest.raises(TypeError):
                fn("triangle")
