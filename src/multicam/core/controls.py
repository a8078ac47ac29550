from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, ClassVar, Mapping, Union

import numpy as np

from .cameras import (
    Camera,
    Vec3,
    clamp,
    field_of,
    finite_float,
    normalize_camera,
    normalized_vec3,
    vec3,
)
from .conventions import (
    DEFAULT_MAX_DISTANCE,
    DEFAULT_MAX_POLAR_ANGLE,
    DEFAULT_MIN_DISTANCE,
    DEFAULT_MIN_POLAR_ANGLE,
    DEFAULT_UP,
    EPSILON,
    ControlKind,
)
from .errors import InvalidControlError


@dataclass(frozen=True)
class SetLookAt:
    kind: ClassVar[ControlKind] = ControlKind.SET_LOOK_AT
    position: Vec3 | None = None
    target: Vec3 | None = None
    up: Vec3 | None = None


@dataclass(frozen=True)
class Pan:
    kind: ClassVar[ControlKind] = ControlKind.PAN
    delta: Vec3 = (0.0, 0.0, 0.0)


@dataclass(frozen=True)
class Truck:
    kind: ClassVar[ControlKind] = ControlKind.TRUCK
    delta: Vec3 = (0.0, 0.0, 0.0)


@dataclass(frozen=True)
class Dolly:
    """Move the eye toward the target by `distance` (negative moves away)."""

    kind: ClassVar[ControlKind] = ControlKind.DOLLY
    distance: float = 0.0


@dataclass(frozen=True)
class Orbit:
    """Rotate the eye around the target; angles in radians."""

    kind: ClassVar[ControlKind] = ControlKind.ORBIT
    delta_azimuth: float = 0.0
    delta_polar: float = 0.0
    radius_delta: float = 0.0


CameraControl = Union[SetLookAt, Pan, Truck, Dolly, Orbit]


@dataclass(frozen=True)
class ControlLimits:
    min_distance: float = DEFAULT_MIN_DISTANCE
    max_distance: float = DEFAULT_MAX_DISTANCE
    min_polar_angle: float = DEFAULT_MIN_POLAR_ANGLE
    max_polar_angle: float = DEFAULT_MAX_POLAR_ANGLE

    @classmethod
    def from_any(cls, value: Any) -> "ControlLimits":
        if isinstance(value, cls):
            return value
        return cls(
            min_distance=finite_float(field_of(value, "min_distance"), DEFAULT_MIN_DISTANCE),
            max_distance=finite_float(field_of(value, "max_distance"), DEFAULT_MAX_DISTANCE),
            min_polar_angle=finite_float(field_of(value, "min_polar_angle"), DEFAULT_MIN_POLAR_ANGLE),
            max_polar_angle=finite_float(field_of(value, "max_polar_angle"), DEFAULT_MAX_POLAR_ANGLE),
        )

    def resolved(self) -> "ControlLimits":
        """Return limits with every bound floored, clamped into (0, pi) and ordered."""
        min_distance = max(EPSILON, finite_float(self.min_distance, DEFAULT_MIN_DISTANCE))
        max_distance = max(min_distance + EPSILON, finite_float(self.max_distance, DEFAULT_MAX_DISTANCE))
        min_polar = clamp(
            finite_float(self.min_polar_angle, DEFAULT_MIN_POLAR_ANGLE),
            EPSILON,
            math.pi - EPSILON,
        )
        max_polar = clamp(
            finite_float(self.max_polar_angle, DEFAULT_MAX_POLAR_ANGLE),
            min_polar,
            math.pi - EPSILON,
        )
        return ControlLimits(
            min_distance=min_distance,
            max_distance=max_distance,
            min_polar_angle=min_polar,
            max_polar_angle=max_polar,
        )


_CONTROL_TYPES: dict[ControlKind, type] = {
    ControlKind.SET_LOOK_AT: SetLookAt,
    ControlKind.PAN: Pan,
    ControlKind.TRUCK: Truck,
    ControlKind.DOLLY: Dolly,
    ControlKind.ORBIT: Orbit,
}


def parse_control(raw: Any) -> CameraControl:
    """Turn a control payload into one of the control dataclasses.

    Mappings are dispatched on their `type` (or `kind`) field.
    """
    if isinstance(raw, (SetLookAt, Pan, Truck, Dolly, Orbit)):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidControlError(raw)

    kind = ControlKind.from_any(raw.get("type", raw.get("kind")))
    if kind is ControlKind.SET_LOOK_AT:
        position = field_of(raw, "position")
        target = field_of(raw, "target")
        up = field_of(raw, "up")
        return SetLookAt(
            position=vec3(position) if position is not None else None,
            target=vec3(target) if target is not None else None,
            up=vec3(up) if up is not None else None,
        )
    if kind in (ControlKind.PAN, ControlKind.TRUCK):
        return _CONTROL_TYPES[kind](delta=vec3(field_of(raw, "delta")))
    if kind is ControlKind.DOLLY:
        return Dolly(distance=finite_float(field_of(raw, "distance"), 0.0))
    return Orbit(
        delta_azimuth=finite_float(field_of(raw, "delta_azimuth"), 0.0),
        delta_polar=finite_float(field_of(raw, "delta_polar"), 0.0),
        radius_delta=finite_float(field_of(raw, "radius_delta"), 0.0),
    )


def _tuple3(v: np.ndarray) -> Vec3:
    return (float(v[0]), float(v[1]), float(v[2]))


def _dolly(position: np.ndarray, target: np.ndarray, control: Dolly, limits: ControlLimits) -> np.ndarray:
    distance = finite_float(control.distance, 0.0)
    direction = normalized_vec3(target - position, (0.0, 0.0, -1.0))
    radius = max(EPSILON, float(np.linalg.norm(position - target)))
    next_radius = clamp(radius - distance, limits.min_distance, limits.max_distance)
    return target - direction * next_radius


def _orbit(position: np.ndarray, target: np.ndarray, control: Orbit, limits: ControlLimits) -> np.ndarray:
    offset = position - target
    radius = max(EPSILON, float(np.linalg.norm(offset)))
    next_radius = clamp(radius + finite_float(control.radius_delta, 0.0), limits.min_distance, limits.max_distance)

    # Spherical coordinates around the target, polar angle measured from +Y.
    azimuth = math.atan2(float(offset[0]), float(offset[2])) + finite_float(control.delta_azimuth, 0.0)
    polar_current = math.acos(clamp(float(offset[1]) / radius, -1.0, 1.0))
    polar = clamp(
        polar_current + finite_float(control.delta_polar, 0.0),
        limits.min_polar_angle,
        limits.max_polar_angle,
    )

    sin_polar = math.sin(polar)
    return target + next_radius * np.array(
        [sin_polar * math.sin(azimuth), math.cos(polar), sin_polar * math.cos(azimuth)],
        dtype=np.float64,
    )


def apply_camera_control(
    camera: Any,
    control: Any,
    limits: ControlLimits | Mapping[str, Any] | None = None,
    *,
    touched_at: float | None = None,
) -> Camera:
    """Apply one navigation command and return a new camera.

    The input is never mutated. The result carries `revision + 1` and the given
    `touched_at` (or the input's when omitted).
    """
    base = normalize_camera(camera, field_of(camera, "id"))
    cmd = parse_control(control)
    lim = ControlLimits.from_any(limits).resolved()

    transform = base.transform
    position = np.asarray(transform.position, dtype=np.float64)
    target = np.asarray(transform.target, dtype=np.float64)
    up = transform.up

    if isinstance(cmd, SetLookAt):
        if cmd.position is not None:
            position = np.asarray(vec3(cmd.position, transform.position), dtype=np.float64)
        if cmd.target is not None:
            target = np.asarray(vec3(cmd.target, transform.target), dtype=np.float64)
        if cmd.up is not None:
            up = _tuple3(normalized_vec3(vec3(cmd.up, transform.up), DEFAULT_UP))
    elif isinstance(cmd, (Pan, Truck)):
        delta = np.asarray(vec3(cmd.delta), dtype=np.float64)
        position = position + delta
        target = target + delta
    elif isinstance(cmd, Dolly):
        position = _dolly(position, target, cmd, lim)
    elif isinstance(cmd, Orbit):
        position = _orbit(position, target, cmd, lim)
    else:
        raise InvalidControlError(getattr(cmd, "kind", cmd))

    next_transform = replace(
        transform,
        position=vec3(position, transform.position),
        target=vec3(target, transform.target),
        up=up,
    )
    return replace(
        base,
        transform=next_transform,
        revision=base.revision + 1,
        touched_at=finite_float(touched_at, base.touched_at),
    )
