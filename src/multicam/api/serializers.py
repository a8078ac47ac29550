from __future__ import annotations

from dataclasses import asdict
from typing import Any

import numpy as np

from ..core.cameras import Camera, OrthographicProjection, Projection, Viewport, camel_case
from ..core.controls import CameraControl, ControlLimits
from ..core.matrices import CameraUniform
from ..core.registry import CameraSnapshot
from ..core.render_plan import RenderPlan, RenderView


def _vec3(v: Any) -> list[float]:
    return [float(v[0]), float(v[1]), float(v[2])]


def _matrix(m: np.ndarray | None) -> list[float] | None:
    if m is None:
        return None
    return [float(x) for x in np.asarray(m, dtype=np.float64).reshape(-1)]


def viewport_to_dict(viewport: Viewport) -> dict[str, float]:
    return {
        "x": float(viewport.x),
        "y": float(viewport.y),
        "width": float(viewport.width),
        "height": float(viewport.height),
    }


def projection_to_dict(projection: Projection) -> dict[str, Any]:
    if isinstance(projection, OrthographicProjection):
        return {
            "kind": projection.kind,
            "left": float(projection.left),
            "right": float(projection.right),
            "top": float(projection.top),
            "bottom": float(projection.bottom),
            "near": float(projection.near),
            "far": float(projection.far),
            "aspect": float(projection.aspect),
        }
    return {
        "kind": projection.kind,
        "fovY": float(projection.fov_y),
        "near": float(projection.near),
        "far": float(projection.far),
        "aspect": float(projection.aspect),
    }


def camera_to_dict(camera: Camera) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": camera.id,
        "enabled": bool(camera.enabled),
        "priority": float(camera.priority),
        "revision": int(camera.revision),
        "touchedAt": float(camera.touched_at),
        "transform": {
            "position": _vec3(camera.transform.position),
            "target": _vec3(camera.transform.target),
            "up": _vec3(camera.transform.up),
        },
        "projection": projection_to_dict(camera.projection),
        "viewport": viewport_to_dict(camera.viewport),
    }
    if camera.metadata is not None:
        out["metadata"] = dict(camera.metadata)
    return out


def snapshot_to_dict(snapshot: CameraSnapshot) -> dict[str, Any]:
    return {
        "activeCameraId": snapshot.active_camera_id,
        "version": int(snapshot.version),
        "updatedAt": float(snapshot.updated_at),
        "maxParallelViews": int(snapshot.max_parallel_views),
        "maxHotCameras": int(snapshot.max_hot_cameras),
        "hotCameraIds": list(snapshot.hot_camera_ids),
        "cameras": [camera_to_dict(c) for c in snapshot.cameras],
    }


def render_view_to_dict(view: RenderView) -> dict[str, Any]:
    out: dict[str, Any] = {
        "cameraId": view.camera_id,
        "order": int(view.order),
        "priority": float(view.priority),
        "revision": int(view.revision),
        "hot": bool(view.hot),
        "viewport": viewport_to_dict(view.viewport),
    }
    if view.view_matrix is not None:
        out["viewMatrix"] = _matrix(view.view_matrix)
    if view.projection_matrix is not None:
        out["projectionMatrix"] = _matrix(view.projection_matrix)
    return out


def render_plan_to_dict(plan: RenderPlan) -> dict[str, Any]:
    return {
        "mode": plan.mode,
        "generatedAt": float(plan.generated_at),
        "activeCameraId": plan.active_camera_id,
        "hotCameraIds": list(plan.hot_camera_ids),
        "maxParallelViews": int(plan.max_parallel_views),
        "totalViews": int(plan.total_views),
        "canRenderInParallel": bool(plan.can_render_in_parallel),
        "batches": [
            {
                "index": int(batch.index),
                "parallel": bool(batch.parallel),
                "views": [render_view_to_dict(v) for v in batch.views],
            }
            for batch in plan.batches
        ],
    }


def camera_uniform_to_dict(uniform: CameraUniform) -> dict[str, Any]:
    return {
        "cameraId": uniform.camera_id,
        "viewMatrix": _matrix(uniform.view_matrix),
        "projectionMatrix": _matrix(uniform.projection_matrix),
        "position": _vec3(uniform.position),
        "target": _vec3(uniform.target),
        "near": float(uniform.near),
        "far": float(uniform.far),
        "projectionKind": uniform.projection_kind,
    }


def control_to_dict(control: CameraControl) -> dict[str, Any]:
    out: dict[str, Any] = {"type": control.kind.value}
    for key, value in asdict(control).items():
        if value is None:
            continue
        out[camel_case(key)] = list(value) if isinstance(value, tuple) else value
    return out


def limits_to_dict(limits: ControlLimits) -> dict[str, float]:
    return {camel_case(key): float(value) for key, value in asdict(limits).items()}
