"""
creature_evolution module: world/physics.py

Top-down 2D physics world (no gravity):
- bodies are circles or rectangles with mass, friction and restitution
- distance constraints are solved position-based, anchors off-centre add rotation
- dynamic bodies collide through a circle proxy; static bodies use their exact shape
- sensor bodies report contacts but are never pushed around by creatures
- contacts that did not exist on the previous step are reported as collision-start events

Velocities are expressed in units per reference step (1/60 s).
"""

from __future__ import annotations
import itertools
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from organism.nodes import Circle, Rectangle, Shape, bounding_radius, collision_radius

REFERENCE_DT = 1 / 60

# Tunables
GROUND_GRIP = 0.05       # velocity lost per step per unit of friction
STATIC_SLIP = 0.02       # speeds below friction_static * STATIC_SLIP stop dead
CONSTRAINT_ITERATIONS = 2
CONTACT_CORRECTION = 0.8
GRID_CELL = 64.0

_ids = itertools.count(1)


class PhysicsError(RuntimeError):
    """The world was asked to integrate references it does not own."""


@dataclass(eq=False)
class Body:
    shape: Shape
    x: float
    y: float
    angle: float = 0.0
    mass: float = 1.0

    friction: float = 0.8
    friction_static: float = 0.5
    friction_air: float = 0.02
    restitution: float = 0.2

    is_static: bool = False
    is_sensor: bool = False
    label: str = ""

    # domain back-references (creature / segment gene / power-up)
    owner: Any = None
    segment: Any = None
    payload: Any = None

    # dynamics
    vx: float = 0.0
    vy: float = 0.0
    ang_v: float = 0.0
    force_x: float = 0.0
    force_y: float = 0.0

    id: int = field(default_factory=lambda: next(_ids))
    prev_x: float = 0.0
    prev_y: float = 0.0
    prev_angle: float = 0.0

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @property
    def radius(self) -> float:
        return collision_radius(self.shape)

    @property
    def inverse_mass(self) -> float:
        if self.is_static or self.mass <= 0:
            return 0.0
        return 1.0 / self.mass

    @property
    def inverse_inertia(self) -> float:
        if self.is_static or self.mass <= 0:
            return 0.0
        r = max(self.radius, 1.0)
        return 1.0 / (self.mass * r * r * 0.5)

    @property
    def speed(self) -> float:
        return math.hypot(self.vx, self.vy)

    def rotate(self, point: Tuple[float, float]) -> Tuple[float, float]:
        c = math.cos(self.angle)
        s = math.sin(self.angle)
        return (point[0] * c - point[1] * s, point[0] * s + point[1] * c)

    def world_point(self, point: Tuple[float, float]) -> Tuple[float, float]:
        rx, ry = self.rotate(point)
        return (self.x + rx, self.y + ry)


@dataclass(eq=False)
class DistanceConstraint:
    body_a: Body
    body_b: Body
    point_a: Tuple[float, float] = (0.0, 0.0)
    point_b: Tuple[float, float] = (0.0, 0.0)
    length: float = 20.0
    stiffness: float = 0.5
    damping: float = 0.1
    label: str = ""
    id: int = field(default_factory=lambda: next(_ids))


@dataclass(eq=False)
class Composite:
    label: str = ""
    bodies: List[Body] = field(default_factory=list)
    constraints: List[DistanceConstraint] = field(default_factory=list)
    id: int = field(default_factory=lambda: next(_ids))


@dataclass
class CollisionEvent:
    body_a: Body
    body_b: Body
    relative_velocity: Tuple[float, float]

    @property
    def impact_speed(self) -> float:
        return math.hypot(*self.relative_velocity)


@dataclass
class _Contact:
    a: Body
    b: Body
    nx: float  # normal from a to b
    ny: float
    depth: float
    approach: float = 0.0  # normal speed at detection, negative when closing
    relative_velocity: Tuple[float, float] = (0.0, 0.0)


def _cross(ax: float, ay: float, bx: float, by: float) -> float:
    return ax * by - ay * bx


def _circle_circle(a: Body, ra: float, b: Body, rb: float) -> Optional[_Contact]:
    dx = b.x - a.x
    dy = b.y - a.y
    d2 = dx * dx + dy * dy
    reach = ra + rb
    if d2 >= reach * reach:
        return None
    d = math.sqrt(d2)
    if d <= 1e-9:
        return _Contact(a, b, 1.0, 0.0, reach)
    return _Contact(a, b, dx / d, dy / d, reach - d)


def _rect_circle(rect: Body, circle: Body, r: float) -> Optional[_Contact]:
    """Contact between a static oriented rectangle and a circle (normal rect -> circle)."""
    shape = rect.shape
    hw = shape.width / 2
    hh = shape.length / 2

    c = math.cos(-rect.angle)
    s = math.sin(-rect.angle)
    dx = circle.x - rect.x
    dy = circle.y - rect.y
    lx = dx * c - dy * s
    ly = dx * s + dy * c

    if abs(lx) <= hw and abs(ly) <= hh:
        # centre inside: push out through the nearest face
        gap_x = hw - abs(lx)
        gap_y = hh - abs(ly)
        if gap_x < gap_y:
            nlx, nly = (1.0 if lx >= 0 else -1.0), 0.0
            depth = gap_x + r
        else:
            nlx, nly = 0.0, (1.0 if ly >= 0 else -1.0)
            depth = gap_y + r
    else:
        qx = max(-hw, min(hw, lx))
        qy = max(-hh, min(hh, ly))
        ex = lx - qx
        ey = ly - qy
        dist = math.hypot(ex, ey)
        if dist >= r:
            return None
        nlx, nly = ex / dist, ey / dist
        depth = r - dist

    nx, ny = rect.rotate((nlx, nly))
    return _Contact(rect, circle, nx, ny, depth)


def _static_contact(static: Body, body: Body) -> Optional[_Contact]:
    r = body.radius
    reach = bounding_radius(static.shape) + r
    if (body.x - static.x) ** 2 + (body.y - static.y) ** 2 > reach * reach:
        return None
    if isinstance(static.shape, Circle):
        return _circle_circle(static, static.shape.radius, body, r)
    if isinstance(static.shape, Rectangle):
        return _rect_circle(static, body, r)
    raise TypeError(f"Unknown body shape: {static.shape!r}")


class PhysicsWorld:
    def __init__(self, gravity: Tuple[float, float] = (0.0, 0.0)):
        self.gravity = gravity
        self.bodies: Dict[int, Body] = {}
        self.constraints: Dict[int, DistanceConstraint] = {}
        self.composites: Dict[int, Composite] = {}
        self._handlers: List[Callable[[CollisionEvent], None]] = []
        self._active_pairs: Set[Tuple[int, int]] = set()

    # ---- registry ----

    def add_body(self, body: Body) -> Body:
        body.prev_x, body.prev_y, body.prev_angle = body.x, body.y, body.angle
        self.bodies[body.id] = body
        return body

    def remove_body(self, body: Body) -> None:
        self.bodies.pop(body.id, None)

    def add_constraint(self, constraint: DistanceConstraint) -> DistanceConstraint:
        self.constraints[constraint.id] = constraint
        return constraint

    def remove_constraint(self, constraint: DistanceConstraint) -> None:
        self.constraints.pop(constraint.id, None)

    def add_composite(self, composite: Composite) -> Composite:
        self.composites[composite.id] = composite
        for body in composite.bodies:
            self.add_body(body)
        for constraint in composite.constraints:
            self.add_constraint(constraint)
        return composite

    def remove_composite(self, composite: Composite) -> None:
        # constraints first so none is left pointing at a removed body
        for constraint in composite.constraints:
            self.remove_constraint(constraint)
        for body in composite.bodies:
            self.remove_body(body)
        self.composites.pop(composite.id, None)

    def has_body(self, body: Body) -> bool:
        return self.bodies.get(body.id) is body

    def has_constraint(self, constraint: DistanceConstraint) -> bool:
        return self.constraints.get(constraint.id) is constraint

    def has_composite(self, composite: Composite) -> bool:
        return self.composites.get(composite.id) is composite

    def constraint_valid(self, constraint: DistanceConstraint) -> bool:
        return (
            self.has_constraint(constraint)
            and self.has_body(constraint.body_a)
            and self.has_body(constraint.body_b)
        )

    def dangling_constraints(self) -> List[DistanceConstraint]:
        return [
            c for c in self.constraints.values()
            if not (self.has_body(c.body_a) and self.has_body(c.body_b))
        ]

    def purge_dangling(self) -> int:
        """Remove every constraint that references a body no longer in the world."""
        stale = self.dangling_constraints()
        for constraint in stale:
            self.remove_constraint(constraint)
        return len(stale)

    # ---- forces + events ----

    def on_collision_start(self, handler: Callable[[CollisionEvent], None]) -> None:
        self._handlers.append(handler)

    def apply_force(self, body: Body, fx: float, fy: float) -> None:
        if body.is_static:
            return
        body.force_x += fx
        body.force_y += fy

    # ---- stepping ----

    def step(self, dt: float) -> List[CollisionEvent]:
        """
        Advance the world by ``dt`` seconds and return collision-start events
        (handlers registered with on_collision_start are called as well).
        """
        if dt <= 0:
            return []

        stale = self.dangling_constraints()
        if stale:
            raise PhysicsError(f"{len(stale)} constraint(s) reference bodies outside the world")

        scale = dt / REFERENCE_DT
        dynamic = [b for b in self.bodies.values() if not b.is_static]
        statics = [b for b in self.bodies.values() if b.is_static]

        self._integrate(dynamic, scale)

        for _ in range(CONSTRAINT_ITERATIONS):
            for constraint in self.constraints.values():
                self._solve_constraint(constraint)

        contacts = self._detect(dynamic, statics)
        for contact in contacts:
            if self._responds(contact):
                self._separate(contact)

        for b in dynamic:
            b.vx = (b.x - b.prev_x) / scale
            b.vy = (b.y - b.prev_y) / scale
            b.ang_v = (b.angle - b.prev_angle) / scale

        for constraint in self.constraints.values():
            self._damp_constraint(constraint)

        for contact in contacts:
            if self._responds(contact):
                self._bounce(contact)

        events = self._collision_starts(contacts)
        for event in events:
            for handler in list(self._handlers):
                handler(event)
        return events

    def _integrate(self, dynamic: Iterable[Body], scale: float) -> None:
        gx, gy = self.gravity
        for b in dynamic:
            w = b.inverse_mass
            b.vx += (b.force_x * w + gx) * scale
            b.vy += (b.force_y * w + gy) * scale
            b.force_x = 0.0
            b.force_y = 0.0

            damping = min(1.0, b.friction_air + b.friction * GROUND_GRIP)
            keep = (1.0 - damping) ** scale
            b.vx *= keep
            b.vy *= keep
            b.ang_v *= keep
            if b.speed < b.friction_static * STATIC_SLIP:
                b.vx = 0.0
                b.vy = 0.0

            b.prev_x, b.prev_y, b.prev_angle = b.x, b.y, b.angle
            b.x += b.vx * scale
            b.y += b.vy * scale
            b.angle += b.ang_v * scale

    def _solve_constraint(self, c: DistanceConstraint) -> None:
        a = c.body_a
        b = c.body_b
        rax, ray = a.rotate(c.point_a)
        rbx, rby = b.rotate(c.point_b)

        dx = (b.x + rbx) - (a.x + rax)
        dy = (b.y + rby) - (a.y + ray)
        dist = math.hypot(dx, dy)
        if dist <= 1e-9:
            return
        nx = dx / dist
        ny = dy / dist

        wa = a.inverse_mass + a.inverse_inertia * _cross(rax, ray, nx, ny) ** 2
        wb = b.inverse_mass + b.inverse_inertia * _cross(rbx, rby, nx, ny) ** 2
        w = wa + wb
        if w <= 0:
            return

        lam = (dist - c.length) / w * c.stiffness
        px = nx * lam
        py = ny * lam

        a.x += px * a.inverse_mass
        a.y += py * a.inverse_mass
        a.angle += a.inverse_inertia * _cross(rax, ray, px, py)
        b.x -= px * b.inverse_mass
        b.y -= py * b.inverse_mass
        b.angle -= b.inverse_inertia * _cross(rbx, rby, px, py)

    @staticmethod
    def _damp_constraint(c: DistanceConstraint) -> None:
        if c.damping <= 0:
            return
        a = c.body_a
        b = c.body_b
        wa = a.inverse_mass
        wb = b.inverse_mass
        w = wa + wb
        if w <= 0:
            return
        dx = b.x - a.x
        dy = b.y - a.y
        dist = math.hypot(dx, dy)
        if dist <= 1e-9:
            return
        nx = dx / dist
        ny = dy / dist
        rel = (b.vx - a.vx) * nx + (b.vy - a.vy) * ny
        j = rel * min(c.damping, 1.0) / w
        a.vx += nx * j * wa
        a.vy += ny * j * wa
        b.vx -= nx * j * wb
        b.vy -= ny * j * wb

    def _detect(self, dynamic: List[Body], statics: List[Body]) -> List[_Contact]:
        contacts: List[_Contact] = []

        grid: Dict[Tuple[int, int], List[Body]] = {}
        for b in dynamic:
            r = b.radius
            x0 = int(math.floor((b.x - r) / GRID_CELL))
            x1 = int(math.floor((b.x + r) / GRID_CELL))
            y0 = int(math.floor((b.y - r) / GRID_CELL))
            y1 = int(math.floor((b.y + r) / GRID_CELL))
            for cx in range(x0, x1 + 1):
                for cy in range(y0, y1 + 1):
                    grid.setdefault((cx, cy), []).append(b)

        seen: Set[Tuple[int, int]] = set()
        for cell in grid.values():
            for i in range(len(cell)):
                a = cell[i]
                for j in range(i + 1, len(cell)):
                    b = cell[j]
                    key = (a.id, b.id) if a.id < b.id else (b.id, a.id)
                    if key in seen:
                        continue
                    seen.add(key)
                    if a.is_sensor and b.is_sensor:
                        continue
                    contact = _circle_circle(a, a.radius, b, b.radius)
                    if contact is not None:
                        contacts.append(contact)

        for b in dynamic:
            for s in statics:
                if s.is_sensor and b.is_sensor:
                    continue
                contact = _static_contact(s, b)
                if contact is not None:
                    contacts.append(contact)

        for contact in contacts:
            rvx = contact.b.vx - contact.a.vx
            rvy = contact.b.vy - contact.a.vy
            contact.approach = rvx * contact.nx + rvy * contact.ny
            contact.relative_velocity = (-rvx, -rvy)
        return contacts

    @staticmethod
    def _responds(contact: _Contact) -> bool:
        a, b = contact.a, contact.b
        if not a.is_sensor and not b.is_sensor:
            return True
        # sensors stay inside walls and obstacles
        return (a.is_static and not a.is_sensor) or (b.is_static and not b.is_sensor)

    @staticmethod
    def _separate(contact: _Contact) -> None:
        a, b = contact.a, contact.b
        wa = a.inverse_mass
        wb = b.inverse_mass
        w = wa + wb
        if w <= 0:
            return
        corr = contact.depth * CONTACT_CORRECTION / w
        a.x -= contact.nx * corr * wa
        a.y -= contact.ny * corr * wa
        b.x += contact.nx * corr * wb
        b.y += contact.ny * corr * wb

    @staticmethod
    def _bounce(contact: _Contact) -> None:
        if contact.approach >= 0:
            return
        a, b = contact.a, contact.b
        wa = a.inverse_mass
        wb = b.inverse_mass
        w = wa + wb
        if w <= 0:
            return
        e = max(a.restitution, b.restitution)
        now = (b.vx - a.vx) * contact.nx + (b.vy - a.vy) * contact.ny
        boost = -e * contact.approach - now
        if boost <= 0:
            return
        j = boost / w
        a.vx -= contact.nx * j * wa
        a.vy -= contact.ny * j * wa
        b.vx += contact.nx * j * wb
        b.vy += contact.ny * j * wb

    def _collision_starts(self, contacts: List[_Contact]) -> List[CollisionEvent]:
        pairs: Set[Tuple[int, int]] = set()
        events: List[CollisionEvent] = []
        for contact in contacts:
            a, b = contact.a, contact.b
            key = (a.id, b.id) if a.id < b.id else (b.id, a.id)
            if key in pairs:
                continue
            pairs.add(key)
            if key in self._active_pairs:
                continue
            events.append(CollisionEvent(body_a=a, body_b=b, relative_velocity=contact.relative_velocity))
        self._active_pairs = pairs
        return events
