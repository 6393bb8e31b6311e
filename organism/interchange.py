"""
creature_evolution module: organism/interchange.py

DNA interchange document: a plain JSON-compatible dict that mirrors the
genome (camelCase keys), used to export the best creature and to seed a new
population from a saved one.
"""

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from organism.nodes import Circle, Rectangle, shape_name
from organism.edges import JointGene, MotorPattern
from organism.genome import Genome, MotorWeight, SegmentGene, SensorGene, SensorType

logger = logging.getLogger(__name__)


class DnaImportError(ValueError):
    """Raised when a DNA document cannot be turned into a genome."""


def genome_to_dict(genome: Genome) -> Dict[str, Any]:
    segments = []
    for seg in genome.segments:
        is_circle = isinstance(seg.shape, Circle)
        segments.append({
            "id": seg.id,
            "parentId": seg.parent_id,
            "attachAngle": seg.attach_angle,
            "shape": shape_name(seg.shape),
            "radius": seg.shape.radius if is_circle else None,
            "length": None if is_circle else seg.shape.length,
            "width": None if is_circle else seg.shape.width,
            "mass": seg.mass,
            "color": list(seg.color),
            "isHeart": seg.is_heart,
            "isMouth": seg.is_mouth,
            "isGripper": seg.is_gripper,
        })

    joints = [
        {
            "segA": j.seg_a,
            "segB": j.seg_b,
            "attachPointA": list(j.attach_point_a),
            "attachPointB": list(j.attach_point_b),
            "type": "distance",
            "restLength": j.rest_length,
            "minLength": j.min_length,
            "maxLength": j.max_length,
            "stiffness": j.stiffness,
            "motorPattern": {
                "amplitude": j.motor.amplitude,
                "frequency": j.motor.frequency,
                "phase": j.motor.phase,
            },
        }
        for j in genome.joints
    ]

    sensors = [
        {
            "id": s.id,
            "type": s.type.value,
            "segmentId": s.segment_id,
            "angle": s.angle,
            "range": s.range,
            "fov": s.fov,
        }
        for s in genome.sensors
    ]

    weights = [
        [
            {"amplitudeMod": w.amplitude_mod, "frequencyMod": w.frequency_mod, "phaseMod": w.phase_mod}
            for w in row
        ]
        for row in genome.sensor_motor_weights
    ]

    return {
        "segments": segments,
        "joints": joints,
        "sensors": sensors,
        "sensorMotorWeights": weights,
        "controller": {"type": "sensor-modulated"},
        "generation": genome.generation,
        "fitness": genome.fitness,
        "baseHue": genome.base_hue,
        "beauty": genome.beauty,
        "memorySize": genome.memory_size,
    }


def _number(data: Dict[str, Any], key: str, where: str, default: Any = None) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DnaImportError(f"{where}: '{key}' must be a number, got {value!r}")
    return float(value)


def _point(value: Any, where: str) -> tuple:
    if value is None:
        return (0.0, 0.0)
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise DnaImportError(f"{where}: attach point must be [x, y], got {value!r}")
    try:
        return (float(value[0]), float(value[1]))
    except (TypeError, ValueError) as exc:
        raise DnaImportError(f"{where}: attach point must be numeric") from exc


def _segment_from_dict(data: Any, index: int, segment_count: int) -> SegmentGene:
    where = f"segments[{index}]"
    if not isinstance(data, dict):
        raise DnaImportError(f"{where}: expected an object")

    kind = data.get("shape")
    if kind == "circle":
        shape = Circle(radius=_number(data, "radius", where))
    elif kind == "rectangle":
        shape = Rectangle(length=_number(data, "length", where), width=_number(data, "width", where))
    else:
        raise DnaImportError(f"{where}: unknown shape {kind!r}")

    color = data.get("color", [128, 128, 128])
    if not isinstance(color, (list, tuple)) or len(color) != 3:
        raise DnaImportError(f"{where}: color must be an RGB triple")

    # joints and sensors address segments by position, so ids must match it
    seg_id = int(_number(data, "id", where, default=index))
    if seg_id != index:
        raise DnaImportError(f"{where}: id {seg_id} does not match its position {index}")

    parent_id = None
    if data.get("parentId") is not None:
        parent_id = int(_number(data, "parentId", where))
        if not 0 <= parent_id < segment_count or parent_id == index:
            raise DnaImportError(f"{where}: parentId {parent_id} names no other segment")

    return SegmentGene(
        id=seg_id,
        parent_id=parent_id,
        attach_angle=_number(data, "attachAngle", where, default=0.0),
        shape=shape,
        mass=_number(data, "mass", where),
        color=tuple(int(c) for c in color),
        is_heart=bool(data.get("isHeart", False)),
        is_mouth=bool(data.get("isMouth", False)),
        is_gripper=bool(data.get("isGripper", False)),
    )


def _joint_from_dict(data: Any, index: int, segment_count: int) -> JointGene:
    where = f"joints[{index}]"
    if not isinstance(data, dict):
        raise DnaImportError(f"{where}: expected an object")

    seg_a = int(_number(data, "segA", where))
    seg_b = int(_number(data, "segB", where))
    for ref in (seg_a, seg_b):
        if not 0 <= ref < segment_count:
            raise DnaImportError(f"{where}: segment index {ref} out of range")

    motor = data.get("motorPattern")
    if not isinstance(motor, dict):
        raise DnaImportError(f"{where}: missing motorPattern")

    return JointGene(
        seg_a=seg_a,
        seg_b=seg_b,
        attach_point_a=_point(data.get("attachPointA"), where),
        attach_point_b=_point(data.get("attachPointB"), where),
        rest_length=_number(data, "restLength", where),
        min_length=_number(data, "minLength", where, default=10.0),
        max_length=_number(data, "maxLength", where, default=50.0),
        stiffness=_number(data, "stiffness", where, default=0.5),
        motor=MotorPattern(
            amplitude=_number(motor, "amplitude", where),
            frequency=_number(motor, "frequency", where),
            phase=_number(motor, "phase", where, default=0.0),
        ),
    )


def _sensor_from_dict(data: Any, index: int, segment_count: int) -> SensorGene:
    where = f"sensors[{index}]"
    if not isinstance(data, dict):
        raise DnaImportError(f"{where}: expected an object")
    try:
        kind = SensorType(data.get("type"))
    except ValueError as exc:
        raise DnaImportError(f"{where}: unknown sensor type {data.get('type')!r}") from exc

    segment_id = int(_number(data, "segmentId", where, default=0))
    if not 0 <= segment_id < segment_count:
        raise DnaImportError(f"{where}: segment index {segment_id} out of range")

    return SensorGene(
        id=int(_number(data, "id", where, default=index)),
        type=kind,
        segment_id=segment_id,
        angle=_number(data, "angle", where, default=0.0),
        range=_number(data, "range", where),
        fov=_number(data, "fov", where, default=0.0),
    )


def _weights_from_list(rows: Any) -> List[List[MotorWeight]]:
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise DnaImportError("sensorMotorWeights must be a list of rows")
    out: List[List[MotorWeight]] = []
    for s, row in enumerate(rows):
        if not isinstance(row, list):
            raise DnaImportError(f"sensorMotorWeights[{s}] must be a list")
        parsed = []
        for j, w in enumerate(row):
            where = f"sensorMotorWeights[{s}][{j}]"
            if not isinstance(w, dict):
                raise DnaImportError(f"{where}: expected an object")
            parsed.append(
                MotorWeight(
                    amplitude_mod=_number(w, "amplitudeMod", where, default=0.0),
                    frequency_mod=_number(w, "frequencyMod", where, default=0.0),
                    phase_mod=_number(w, "phaseMod", where, default=0.0),
                )
            )
        out.append(parsed)
    return out


def genome_from_dict(data: Any) -> Genome:
    """
    Build a genome from an interchange document.
    Raises DnaImportError when the document is malformed.
    """
    try:
        return _build_genome(data)
    except DnaImportError:
        raise
    except (TypeError, ValueError) as exc:
        raise DnaImportError(f"Malformed DNA document: {exc}") from exc


def _build_genome(data: Any) -> Genome:
    if not isinstance(data, dict):
        raise DnaImportError("DNA document must be an object")

    raw_segments = data.get("segments")
    if not isinstance(raw_segments, list) or not raw_segments:
        raise DnaImportError("DNA document needs a non-empty 'segments' list")
    raw_joints = data.get("joints", [])
    if not isinstance(raw_joints, list):
        raise DnaImportError("'joints' must be a list")
    raw_sensors = data.get("sensors") or []
    if not isinstance(raw_sensors, list):
        raise DnaImportError("'sensors' must be a list")

    segments = [_segment_from_dict(s, i, len(raw_segments)) for i, s in enumerate(raw_segments)]
    joints = [_joint_from_dict(j, i, len(segments)) for i, j in enumerate(raw_joints)]
    sensors = [_sensor_from_dict(s, i, len(segments)) for i, s in enumerate(raw_sensors)]

    genome = Genome(
        segments=segments,
        joints=joints,
        sensors=sensors,
        sensor_motor_weights=_weights_from_list(data.get("sensorMotorWeights")),
        generation=int(_number(data, "generation", "document", default=0)),
        fitness=_number(data, "fitness", "document", default=0.0),
        base_hue=_number(data, "baseHue", "document", default=0.0),
        beauty=_number(data, "beauty", "document", default=0.5),
        memory_size=int(_number(data, "memorySize", "document", default=2)),
    )
    if not genome.weights_consistent():
        logger.debug(
            "Repairing weight matrix to %d sensors x %d joints", len(sensors), len(joints)
        )
        genome.repair_weights()
    return genome


def dumps_genome(genome: Genome) -> str:
    return json.dumps(genome_to_dict(genome), indent=2)


def loads_genome(text: str) -> Genome:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DnaImportError(f"DNA document is not valid JSON: {exc}") from exc
    return genome_from_dict(data)


def export_genome(genome: Genome, directory: Union[str, Path], name: str = "creature_dna") -> Path:
    path = Path(directory) / f"{name}_gen{genome.generation}.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps_genome(genome), encoding="utf-8")
    logger.info("Exported DNA (generation %d) to %s", genome.generation, path)
    return path


def import_genome(path: Union[str, Path]) -> Genome:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise DnaImportError(f"Cannot read DNA file {path}: {exc}") from exc
    return loads_genome(text)
