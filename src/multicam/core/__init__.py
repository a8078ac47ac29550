from __future__ import annotations

from .cameras import (
    Camera,
    OrthographicProjection,
    PerspectiveProjection,
    Projection,
    Transform,
    Viewport,
    normalize_camera,
    normalize_projection,
    normalize_transform,
    normalize_viewport,
    sorted_cameras,
)
from .controls import (
    CameraControl,
    ControlLimits,
    Dolly,
    Orbit,
    Pan,
    SetLookAt,
    Truck,
    apply_camera_control,
    parse_control,
)
from .conventions import CAMERA_CONTROL_KINDS, CAMERA_PROJECTION_KINDS, EPSILON, ControlKind, ProjectionKind
from .errors import (
    CameraError,
    DuplicateIdError,
    EmptyIdError,
    InvalidControlError,
    InvalidListenerError,
    UnknownCameraError,
)
from .matrices import CameraUniform, build_projection_matrix, build_view_matrix, to_camera_uniform
from .registry import REGISTRY, CameraRegistry, CameraSnapshot
from .render_plan import RenderBatch, RenderPlan, RenderView, create_render_plan
from .settings import RegistrySettings

__all__ = [
    "CAMERA_CONTROL_KINDS",
    "CAMERA_PROJECTION_KINDS",
    "EPSILON",
    "ControlKind",
    "ProjectionKind",
    "Camera",
    "Transform",
    "PerspectiveProjection",
    "OrthographicProjection",
    "Projection",
    "Viewport",
    "normalize_camera",
    "normalize_transform",
    "normalize_projection",
    "normalize_viewport",
    "sorted_cameras",
    "CameraControl",
    "ControlLimits",
    "SetLookAt",
    "Pan",
    "Truck",
    "Dolly",
    "Orbit",
    "parse_control",
    "apply_camera_control",
    "CameraError",
    "EmptyIdError",
    "DuplicateIdError",
    "UnknownCameraError",
    "InvalidControlError",
    "InvalidListenerError",
    "CameraUniform",
    "build_view_matrix",
    "build_projection_matrix",
    "to_camera_uniform",
    "RenderView",
    "RenderBatch",
    "RenderPlan",
    "create_render_plan",
    "RegistrySettings",
    "CameraSnapshot",
    "CameraRegistry",
    "REGISTRY",
]
