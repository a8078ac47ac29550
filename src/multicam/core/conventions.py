from __future__ import annotations

import math
from enum import Enum
from typing import Any

from .errors import InvalidControlError


EPSILON = 1e-6

DEFAULT_UP: tuple[float, float, float] = (0.0, 1.0, 0.0)
DEFAULT_POSITION: tuple[float, float, float] = (0.0, 0.0, 5.0)
DEFAULT_TARGET: tuple[float, float, float] = (0.0, 0.0, 0.0)

DEFAULT_FOV_Y = 60.0
DEFAULT_NEAR = 0.1
DEFAULT_FAR = 2000.0

DEFAULT_MIN_DISTANCE = 0.05
DEFAULT_MAX_DISTANCE = 100000.0
DEFAULT_MIN_POLAR_ANGLE = EPSILON
DEFAULT_MAX_POLAR_ANGLE = math.pi - EPSILON


class ProjectionKind(str, Enum):
    """Projection model of a camera."""

    PERSPECTIVE = "perspective"
    ORTHOGRAPHIC = "orthographic"

    @classmethod
    def from_any(cls, value: Any) -> "ProjectionKind":
        """Resolve a projection kind, falling back to perspective.

        Projection input comes from loosely structured UI/config payloads, so an
        unknown kind is not an error.
        """
        if isinstance(value, cls):
            return value
        v = str(value).strip().lower() if value is not None else ""
        for kind in cls:
            if kind.value == v:
                return kind
        return cls.PERSPECTIVE


class ControlKind(str, Enum):
    """Navigation command applied to a camera transform."""

    SET_LOOK_AT = "set-look-at"
    ORBIT = "orbit"
    PAN = "pan"
    TRUCK = "truck"
    DOLLY = "dolly"

    @classmethod
    def from_any(cls, value: Any) -> "ControlKind":
        if isinstance(value, cls):
            return value

        # Closed set: only the exact canonical spellings are accepted.
        if isinstance(value, str):
            for kind in cls:
                if kind.value == value:
                    return kind

        raise InvalidControlError(value)


CAMERA_PROJECTION_KINDS: tuple[str, ...] = tuple(k.value for k in ProjectionKind)
CAMERA_CONTROL_KINDS: tuple[str, ...] = tuple(k.value for k in ControlKind)
