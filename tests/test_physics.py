"""Physics world: registry bookkeeping, constraints, contacts and collision-start events."""

import math

import pytest

from organism.nodes import Circle, Rectangle
from world.physics import (
    Body,
    CollisionEvent,
    Composite,
    DistanceConstraint,
    PhysicsError,
)

DT = 1 / 60


def ball(x, y, r=10.0, **kw):
    return Body(shape=Circle(radius=r), x=x, y=y, **kw)


class TestRegistry:
    def test_add_and_remove_body(self, physics):
        b = physics.add_body(ball(0, 0))
        assert physics.has_body(b)
        physics.remove_body(b)
        assert not physics.has_body(b)
        physics.remove_body(b)  # second removal is harmless

    def test_composite_adds_and_removes_children(self, physics):
        a, b = ball(0, 0), ball(30, 0)
        c = DistanceConstraint(a, b, length=30.0)
        comp = physics.add_composite(Composite(bodies=[a, b], constraints=[c]))
        assert physics.has_composite(comp)
        assert physics.constraint_valid(c)

        physics.remove_composite(comp)
        assert not physics.has_composite(comp)
        assert not physics.has_body(a) and not physics.has_body(b)
        assert not physics.has_constraint(c)

    def test_dangling_constraint_detected_and_purged(self, physics):
        a, b = physics.add_body(ball(0, 0)), physics.add_body(ball(30, 0))
        c = physics.add_constraint(DistanceConstraint(a, b, length=30.0))
        physics.remove_body(b)

        assert not physics.constraint_valid(c)
        assert physics.dangling_constraints() == [c]
        assert physics.purge_dangling() == 1
        assert not physics.has_constraint(c)
        assert physics.purge_dangling() == 0

    def test_step_refuses_dangling_constraints(self, physics):
        a, b = physics.add_body(ball(0, 0)), physics.add_body(ball(30, 0))
        physics.add_constraint(DistanceConstraint(a, b, length=30.0))
        physics.remove_body(a)
        with pytest.raises(PhysicsError):
            physics.step(DT)


class TestDynamics:
    def test_zero_dt_is_a_no_op(self, physics):
        b = physics.add_body(ball(0, 0, vx=5.0))
        assert physics.step(0) == []
        assert b.x == 0

    def test_force_changes_velocity(self, physics):
        b = physics.add_body(ball(100, 100, mass=2.0, friction=0.0, friction_static=0.0, friction_air=0.0))
        physics.apply_force(b, 1.0, 0.0)
        physics.step(DT)
        assert b.vx == pytest.approx(0.5)
        assert b.x == pytest.approx(100.5)
        # forces are cleared after each step
        physics.step(DT)
        assert b.vx == pytest.approx(0.5)

    def test_force_on_static_body_is_ignored(self, physics):
        wall = physics.add_body(ball(0, 0, is_static=True))
        physics.apply_force(wall, 5.0, 5.0)
        physics.step(DT)
        assert (wall.x, wall.y) == (0, 0)

    def test_drag_slows_bodies_down(self, physics):
        b = physics.add_body(ball(100, 100, vx=5.0))
        for _ in range(30):
            physics.step(DT)
        assert 0 <= b.vx < 5.0

    def test_constraint_pulls_towards_its_length(self, physics):
        a = physics.add_body(ball(0, 0))
        b = physics.add_body(ball(60, 0))
        physics.add_constraint(DistanceConstraint(a, b, length=25.0, stiffness=0.8))
        for _ in range(120):
            physics.step(DT)
        assert math.hypot(b.x - a.x, b.y - a.y) == pytest.approx(25.0, abs=1.0)

    def test_offset_anchor_turns_the_body(self, physics):
        a = physics.add_body(ball(0, 0))
        b = physics.add_body(ball(60, 0))
        physics.add_constraint(DistanceConstraint(a, b, point_a=(0.0, 10.0), length=20.0, stiffness=0.8))
        physics.step(DT)
        assert a.angle != 0.0


class TestContacts:
    def test_overlapping_balls_are_pushed_apart(self, physics):
        a = physics.add_body(ball(0, 0))
        b = physics.add_body(ball(10, 0))
        for _ in range(10):
            physics.step(DT)
        assert b.x - a.x > 15

    def test_wall_keeps_ball_out(self, physics):
        physics.add_body(Body(shape=Rectangle(length=200, width=40), x=0, y=0, is_static=True))
        b = physics.add_body(ball(40, 0, vx=-6.0, friction_air=0.0, friction=0.0))
        for _ in range(60):
            physics.step(DT)
        assert b.x >= 20 + 10 - 1.0

    def test_restitution_bounces(self, physics):
        physics.add_body(Body(shape=Rectangle(length=200, width=40), x=0, y=0, is_static=True, restitution=0.8))
        b = physics.add_body(ball(35, 0, vx=-6.0, friction_air=0.0, friction=0.0))
        for _ in range(10):
            physics.step(DT)
        assert b.vx > 0

    def test_sensor_never_pushes(self, physics):
        physics.add_body(ball(0, 0, r=12, is_static=True, is_sensor=True))
        b = physics.add_body(ball(5, 0, friction=0.0, friction_air=0.0))
        events = physics.step(DT)
        assert b.x == pytest.approx(5.0)
        assert len(events) == 1


class TestCollisionEvents:
    def test_contact_reported_once_while_touching(self, physics):
        sensor = physics.add_body(ball(0, 0, r=12, is_static=True, is_sensor=True))
        b = physics.add_body(ball(5, 0, friction=0.0, friction_air=0.0))
        assert len(physics.step(DT)) == 1
        assert physics.step(DT) == []

        # leave and come back: a new start
        b.x = 200
        physics.step(DT)
        b.x = 5
        events = physics.step(DT)
        assert len(events) == 1
        assert {events[0].body_a, events[0].body_b} == {sensor, b}

    def test_handlers_receive_events(self, physics):
        seen = []
        physics.on_collision_start(seen.append)
        physics.add_body(ball(0, 0))
        physics.add_body(ball(15, 0))
        physics.step(DT)
        assert len(seen) == 1
        assert isinstance(seen[0], CollisionEvent)

    def test_impact_speed(self):
        event = CollisionEvent(body_a=ball(0, 0), body_b=ball(1, 0), relative_velocity=(3.0, 4.0))
        assert event.impact_speed == 5.0

    def test_relative_velocity_is_taken_before_the_solve(self, physics):
        a = physics.add_body(ball(0, 0, friction=0.0, friction_air=0.0, vx=3.0))
        b = physics.add_body(ball(21, 0, friction=0.0, friction_air=0.0, vx=-3.0))
        events = physics.step(DT)
        assert len(events) == 1
        assert events[0].impact_speed == pytest.approx(6.0)
        assert {events[0].body_a, events[0].body_b} == {a, b}
