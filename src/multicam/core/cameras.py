"""Camera data model and the normalization boundary.

Camera definitions usually come from loosely structured UI/config payloads, so every
entry point funnels through ``normalize_camera`` (or one of the per-part helpers). It
never raises for malformed numbers or missing sub-objects: invalid values are replaced
by defaults or clamped into range. The only rejected input is a blank camera id.

Notes:
- Mapping keys may be snake_case or camelCase (``fov_y`` / ``fovY``).
- Everything produced here is a frozen dataclass holding tuples, so instances can be
  shared freely. ``metadata`` is the one mutable payload and is deep copied.
"""

from __future__ import annotations

import copy
import math
import re
import sys
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Literal, Mapping, Union

import numpy as np

from .conventions import (
    DEFAULT_FAR,
    DEFAULT_FOV_Y,
    DEFAULT_NEAR,
    DEFAULT_POSITION,
    DEFAULT_TARGET,
    DEFAULT_UP,
    EPSILON,
    ProjectionKind,
)
from .errors import EmptyIdError


Vec3 = tuple[float, float, float]


@dataclass(frozen=True)
class Transform:
    position: Vec3 = DEFAULT_POSITION
    target: Vec3 = DEFAULT_TARGET
    up: Vec3 = DEFAULT_UP


@dataclass(frozen=True, kw_only=True)
class PerspectiveProjection:
    fov_y: float = DEFAULT_FOV_Y  # degrees
    near: float = DEFAULT_NEAR
    far: float = DEFAULT_FAR
    aspect: float = 1.0
    kind: Literal["perspective"] = field(default="perspective", init=False)


@dataclass(frozen=True, kw_only=True)
class OrthographicProjection:
    left: float = -1.0
    right: float = 1.0
    top: float = 1.0
    bottom: float = -1.0
    near: float = DEFAULT_NEAR
    far: float = DEFAULT_FAR
    aspect: float = 1.0
    kind: Literal["orthographic"] = field(default="orthographic", init=False)


Projection = Union[PerspectiveProjection, OrthographicProjection]


@dataclass(frozen=True)
class Viewport:
    """Normalized sub-rectangle of the render target."""

    x: float = 0.0
    y: float = 0.0
    width: float = 1.0
    height: float = 1.0

    @property
    def aspect(self) -> float:
        return float(self.width) / max(EPSILON, float(self.height))


@dataclass(frozen=True, kw_only=True)
class Camera:
    """A registered camera.

    Notes:
    - `revision` grows by at least one on every update or control application.
    - `touched_at` is in milliseconds of the registry's time source.
    """

    id: str
    enabled: bool = True
    priority: float = 0.0
    revision: int = 0
    touched_at: float = 0.0
    transform: Transform = field(default_factory=Transform)
    projection: Projection = field(default_factory=PerspectiveProjection)
    viewport: Viewport = field(default_factory=Viewport)
    metadata: dict[str, Any] | None = None


def clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def finite_float(value: Any, fallback: float = 0.0) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError, OverflowError):
        return float(fallback)
    if not math.isfinite(out):
        return float(fallback)
    return out


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", str(name)).lower()


def snake_keys(value: Mapping[str, Any]) -> dict[str, Any]:
    return {snake_case(k): v for k, v in value.items()}


def field_of(obj: Any, name: str, default: Any = None) -> Any:
    """Read `name` from a mapping (snake_case or camelCase key) or from an attribute."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        if name in obj:
            return obj[name]
        return obj.get(camel_case(name), default)
    return getattr(obj, name, default)


def vec3(value: Any, fallback: Iterable[float] = (0.0, 0.0, 0.0)) -> Vec3:
    fb = tuple(float(v) for v in fallback)
    if value is None or isinstance(value, (str, bytes, Mapping)):
        return (fb[0], fb[1], fb[2])
    try:
        items = list(value)
    except TypeError:
        return (fb[0], fb[1], fb[2])
    if len(items) < 3:
        return (fb[0], fb[1], fb[2])
    return (
        finite_float(items[0], fb[0]),
        finite_float(items[1], fb[1]),
        finite_float(items[2], fb[2]),
    )


def normalized_vec3(v: np.ndarray | Iterable[float], fallback: Iterable[float]) -> np.ndarray:
    out = np.asarray(tuple(v), dtype=np.float64).reshape(3)
    with np.errstate(over="ignore", invalid="ignore"):
        n = float(np.linalg.norm(out))
    if not math.isfinite(n) or n <= EPSILON:
        return np.asarray(tuple(fallback), dtype=np.float64).reshape(3)
    return out / n


def normalize_transform(transform: Any = None) -> Transform:
    position = vec3(field_of(transform, "position"), DEFAULT_POSITION)
    target = vec3(field_of(transform, "target"), DEFAULT_TARGET)
    up = normalized_vec3(vec3(field_of(transform, "up"), DEFAULT_UP), DEFAULT_UP)
    return Transform(
        position=position,
        target=target,
        up=(float(up[0]), float(up[1]), float(up[2])),
    )


_MAX_NEAR = math.nextafter(sys.float_info.max, 0.0)


def _near_far(projection: Any) -> tuple[float, float]:
    near = clamp(finite_float(field_of(projection, "near"), DEFAULT_NEAR), EPSILON, _MAX_NEAR)
    # near + EPSILON rounds back to near once near is large; step at least one ulp.
    min_far = max(near + EPSILON, math.nextafter(near, math.inf))
    far = max(min_far, finite_float(field_of(projection, "far"), DEFAULT_FAR))
    return near, far


def normalize_projection(projection: Any = None) -> Projection:
    kind = ProjectionKind.from_any(field_of(projection, "kind"))
    near, far = _near_far(projection)

    if kind is ProjectionKind.ORTHOGRAPHIC:
        return OrthographicProjection(
            left=finite_float(field_of(projection, "left"), -1.0),
            right=finite_float(field_of(projection, "right"), 1.0),
            top=finite_float(field_of(projection, "top"), 1.0),
            bottom=finite_float(field_of(projection, "bottom"), -1.0),
            near=near,
            far=far,
            aspect=finite_float(field_of(projection, "aspect"), 1.0),
        )

    return PerspectiveProjection(
        fov_y=clamp(finite_float(field_of(projection, "fov_y"), DEFAULT_FOV_Y), 1.0, 179.0),
        near=near,
        far=far,
        aspect=max(EPSILON, finite_float(field_of(projection, "aspect"), 1.0)),
    )


def normalize_viewport(viewport: Any = None) -> Viewport:
    return Viewport(
        x=clamp(finite_float(field_of(viewport, "x"), 0.0), 0.0, 1.0),
        y=clamp(finite_float(field_of(viewport, "y"), 0.0), 0.0, 1.0),
        width=clamp(finite_float(field_of(viewport, "width"), 1.0), EPSILON, 1.0),
        height=clamp(finite_float(field_of(viewport, "height"), 1.0), EPSILON, 1.0),
    )


def _enabled(value: Any) -> bool:
    # Only an explicit false disables a camera.
    return not (isinstance(value, (bool, np.bool_)) and not bool(value))


def normalize_camera(definition: Any, generated_id: str | None = None) -> Camera:
    """Coerce a raw camera definition into a `Camera`.

    Raises EmptyIdError when the resolved id is blank; everything else falls back.
    """
    raw_id = field_of(definition, "id")
    if raw_id is None:
        raw_id = generated_id if generated_id is not None else "camera"
    camera_id = str(raw_id).strip()
    if not camera_id:
        raise EmptyIdError()

    metadata = field_of(definition, "metadata")
    return Camera(
        id=camera_id,
        enabled=_enabled(field_of(definition, "enabled", True)),
        priority=finite_float(field_of(definition, "priority"), 0.0),
        revision=max(0, int(math.floor(finite_float(field_of(definition, "revision"), 0.0)))),
        touched_at=finite_float(field_of(definition, "touched_at"), 0.0),
        transform=normalize_transform(field_of(definition, "transform")),
        projection=normalize_projection(field_of(definition, "projection")),
        viewport=normalize_viewport(field_of(definition, "viewport")),
        metadata=copy.deepcopy(dict(metadata)) if isinstance(metadata, Mapping) else None,
    )


def clone_camera(camera: Camera) -> Camera:
    """Return a copy that shares nothing mutable with `camera`."""
    return Camera(
        id=camera.id,
        enabled=camera.enabled,
        priority=camera.priority,
        revision=camera.revision,
        touched_at=camera.touched_at,
        transform=camera.transform,
        projection=camera.projection,
        viewport=camera.viewport,
        metadata=copy.deepcopy(camera.metadata) if camera.metadata is not None else None,
    )


def camera_to_mapping(camera: Camera) -> dict[str, Any]:
    """Plain nested dict (snake_case keys) of a camera, used for patch merging."""
    return asdict(camera)


def sorted_cameras(cameras: Iterable[Camera]) -> list[Camera]:
    """Canonical order: priority descending, ties broken by id ascending."""
    return sorted(cameras, key=lambda c: (-float(c.priority), c.id))
