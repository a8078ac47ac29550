from __future__ import annotations

from .client import CameraPanelClient
from .core import (
    CAMERA_CONTROL_KINDS,
    CAMERA_PROJECTION_KINDS,
    Camera,
    CameraError,
    CameraRegistry,
    CameraSnapshot,
    CameraUniform,
    ControlLimits,
    Dolly,
    DuplicateIdError,
    EmptyIdError,
    InvalidControlError,
    InvalidListenerError,
    Orbit,
    OrthographicProjection,
    Pan,
    PerspectiveProjection,
    RegistrySettings,
    RenderBatch,
    RenderPlan,
    RenderView,
    SetLookAt,
    Transform,
    Truck,
    UnknownCameraError,
    Viewport,
    apply_camera_control,
    build_projection_matrix,
    build_view_matrix,
    create_render_plan,
    normalize_camera,
    to_camera_uniform,
)

__all__ = [
    "CAMERA_CONTROL_KINDS",
    "CAMERA_PROJECTION_KINDS",
    "Camera",
    "Transform",
    "PerspectiveProjection",
    "OrthographicProjection",
    "Viewport",
    "normalize_camera",
    "ControlLimits",
    "SetLookAt",
    "Pan",
    "Truck",
    "Dolly",
    "Orbit",
    "apply_camera_control",
    "build_view_matrix",
    "build_projection_matrix",
    "to_camera_uniform",
    "CameraUniform",
    "RenderView",
    "RenderBatch",
    "RenderPlan",
    "create_render_plan",
    "RegistrySettings",
    "CameraRegistry",
    "CameraSnapshot",
    "CameraError",
    "EmptyIdError",
    "DuplicateIdError",
    "UnknownCameraError",
    "InvalidControlError",
    "InvalidListenerError",
    "CameraPanelClient",
]
