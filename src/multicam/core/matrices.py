from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import numpy as np

from .cameras import (
    OrthographicProjection,
    PerspectiveProjection,
    Projection,
    Transform,
    field_of,
    finite_float,
    normalize_projection,
    normalize_transform,
    normalized_vec3,
)
from .conventions import DEFAULT_UP, EPSILON


_F32_MAX = float(np.finfo(np.float32).max)


@dataclass(frozen=True)
class CameraUniform:
    """Per-camera values a shader binds: matrices plus eye/target and depth range."""

    camera_id: str
    view_matrix: np.ndarray  # float32 (16,), column-major
    projection_matrix: np.ndarray  # float32 (16,), column-major
    position: np.ndarray  # float32 (3,)
    target: np.ndarray  # float32 (3,)
    near: float
    far: float
    projection_kind: str


def _frozen_f32(values: np.ndarray) -> np.ndarray:
    # Finite input can still overflow float32; clamp instead of leaking inf/nan.
    with np.errstate(over="ignore", invalid="ignore"):
        out = np.asarray(values, dtype=np.float64).reshape(-1)
        out = np.nan_to_num(out, nan=0.0, posinf=_F32_MAX, neginf=-_F32_MAX)
        out = np.clip(out, -_F32_MAX, _F32_MAX).astype(np.float32)
    out.flags.writeable = False
    return out


def _column_major(m: np.ndarray) -> np.ndarray:
    return _frozen_f32(np.asarray(m, dtype=np.float64).reshape(4, 4).T)


def _as_transform(camera_or_transform: Any) -> Transform:
    if isinstance(camera_or_transform, Transform):
        return camera_or_transform
    transform = field_of(camera_or_transform, "transform")
    if transform is None and field_of(camera_or_transform, "position") is not None:
        transform = camera_or_transform
    return normalize_transform(transform)


def _as_projection(camera_or_projection: Any) -> Projection:
    if isinstance(camera_or_projection, (PerspectiveProjection, OrthographicProjection)):
        return camera_or_projection
    projection = field_of(camera_or_projection, "projection")
    if projection is None and field_of(camera_or_projection, "kind") is not None:
        projection = camera_or_projection
    return normalize_projection(projection)


def build_view_matrix(camera_or_transform: Any) -> np.ndarray:
    """Right-handed look-at view matrix as 16 column-major float32 values.

    Accepts a camera (anything with a `transform`), a `Transform`, or a raw mapping
    with `position`/`target`/`up`.
    """
    transform = _as_transform(camera_or_transform)
    with np.errstate(over="ignore", invalid="ignore"):
        eye = np.asarray(transform.position, dtype=np.float64)
        target = np.asarray(transform.target, dtype=np.float64)
        up = normalized_vec3(transform.up, DEFAULT_UP)

        z_axis = normalized_vec3(eye - target, (0.0, 0.0, 1.0))
        right = np.cross(up, z_axis)
        if not float(np.linalg.norm(right)) > EPSILON:
            # up is parallel to the view direction: swap in a canonical reference axis.
            fallback_up = np.array([0.0, 1.0, 0.0], dtype=np.float64)
            if abs(float(np.dot(z_axis, fallback_up))) > 0.95:
                fallback_up = np.array([1.0, 0.0, 0.0], dtype=np.float64)
            right = np.cross(fallback_up, z_axis)
        x_axis = normalized_vec3(right, (1.0, 0.0, 0.0))
        y_axis = np.cross(z_axis, x_axis)

        m = np.eye(4, dtype=np.float64)
        m[0, :3] = x_axis
        m[1, :3] = y_axis
        m[2, :3] = z_axis
        m[0, 3] = -float(np.dot(x_axis, eye))
        m[1, 3] = -float(np.dot(y_axis, eye))
        m[2, 3] = -float(np.dot(z_axis, eye))
    return _column_major(m)


def _perspective(projection: PerspectiveProjection, override_aspect: float | None) -> np.ndarray:
    aspect = max(EPSILON, finite_float(override_aspect, projection.aspect))
    fov_rad = math.radians(projection.fov_y)
    f = 1.0 / max(EPSILON, math.tan(fov_rad / 2.0))
    near = float(projection.near)
    far = float(projection.far)
    depth = min(-EPSILON, near - far)

    m = np.zeros((4, 4), dtype=np.float64)
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = (far + near) / depth
    m[2, 3] = (2.0 * far * near) / depth
    m[3, 2] = -1.0
    return m


def _orthographic(projection: OrthographicProjection, override_aspect: float | None) -> np.ndarray:
    stored_aspect = finite_float(projection.aspect, 0.0)
    aspect = max(EPSILON, finite_float(override_aspect, stored_aspect or 1.0))

    left = float(projection.left)
    right = float(projection.right)
    top = float(projection.top)
    bottom = float(projection.bottom)
    near = float(projection.near)
    far = float(projection.far)

    if stored_aspect > EPSILON:
        # Keep the vertical extent; widen or narrow horizontally to the viewport.
        scale = aspect / stored_aspect
        left *= scale
        right *= scale

    width = max(EPSILON, right - left)
    height = max(EPSILON, top - bottom)
    depth = max(EPSILON, far - near)

    m = np.eye(4, dtype=np.float64)
    m[0, 0] = 2.0 / width
    m[1, 1] = 2.0 / height
    m[2, 2] = -2.0 / depth
    m[0, 3] = -(right + left) / width
    m[1, 3] = -(top + bottom) / height
    m[2, 3] = -(far + near) / depth
    return m


def build_projection_matrix(camera_or_projection: Any, override_aspect: float | None = None) -> np.ndarray:
    """OpenGL-style projection matrix (depth range [-1, 1]) as 16 column-major float32 values.

    `override_aspect` replaces the stored aspect, typically with the viewport's own
    width / height.
    """
    projection = _as_projection(camera_or_projection)
    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        if isinstance(projection, OrthographicProjection):
            m = _orthographic(projection, override_aspect)
        else:
            m = _perspective(projection, override_aspect)
    return _column_major(m)


def to_camera_uniform(camera: Any, override_aspect: float | None = None) -> CameraUniform:
    transform = normalize_transform(field_of(camera, "transform"))
    projection = normalize_projection(field_of(camera, "projection"))
    raw_id = field_of(camera, "id")
    return CameraUniform(
        camera_id=str(raw_id) if raw_id is not None else "",
        view_matrix=build_view_matrix(transform),
        projection_matrix=build_projection_matrix(projection, override_aspect),
        position=_frozen_f32(np.asarray(transform.position, dtype=np.float64)),
        target=_frozen_f32(np.asarray(transform.target, dtype=np.float64)),
        near=float(projection.near),
        far=float(projection.far),
        projection_kind=projection.kind,
    )
