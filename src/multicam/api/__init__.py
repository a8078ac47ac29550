from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from ..core.controls import parse_control
from ..core.errors import CameraError, DuplicateIdError, UnknownCameraError
from ..core.matrices import to_camera_uniform
from ..core.registry import REGISTRY, CameraRegistry
from .serializers import camera_to_dict, camera_uniform_to_dict, render_plan_to_dict, snapshot_to_dict


def _http_error(e: CameraError) -> HTTPException:
    if isinstance(e, UnknownCameraError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, DuplicateIdError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


def create_api_app(registry: CameraRegistry | None = None) -> FastAPI:
    """Build the camera panel API around `registry` (the module-level registry by default).

    UIs poll `/api/events` and refetch `/api/cameras` when the version changes.
    """
    reg = registry if registry is not None else REGISTRY
    app = FastAPI(title="multicam", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/api/events")
    def events() -> dict[str, int]:
        return {"version": reg.version}

    @app.get("/api/cameras")
    def get_cameras() -> dict[str, Any]:
        return snapshot_to_dict(reg.get_snapshot())

    @app.post("/api/cameras")
    def register_camera(body: dict) -> dict[str, Any]:
        try:
            return camera_to_dict(reg.register_camera(body))
        except CameraError as e:
            raise _http_error(e) from e

    @app.post("/api/cameras/switch")
    def switch_camera(body: dict | None = None) -> dict[str, Any] | None:
        body = body or {}
        camera = reg.switch_camera(
            body.get("direction", 1),
            enabled_only=body.get("enabledOnly", True) is not False,
        )
        return camera_to_dict(camera) if camera is not None else None

    @app.get("/api/cameras/{camera_id}")
    def get_camera(camera_id: str) -> dict[str, Any]:
        camera = reg.get_camera(camera_id)
        if camera is None:
            raise HTTPException(status_code=404, detail="Unknown camera")
        return camera_to_dict(camera)

    @app.patch("/api/cameras/{camera_id}")
    def update_camera(camera_id: str, body: dict) -> dict[str, Any]:
        try:
            return camera_to_dict(reg.update_camera(camera_id, body))
        except CameraError as e:
            raise _http_error(e) from e

    @app.delete("/api/cameras/{camera_id}")
    def remove_camera(camera_id: str) -> dict[str, bool]:
        return {"removed": reg.remove_camera(camera_id)}

    @app.post("/api/cameras/{camera_id}/activate")
    def activate_camera(camera_id: str) -> dict[str, Any]:
        try:
            return camera_to_dict(reg.activate_camera(camera_id))
        except CameraError as e:
            raise _http_error(e) from e

    @app.post("/api/cameras/{camera_id}/control")
    def apply_control(camera_id: str, body: dict) -> dict[str, Any]:
        # Body is the control itself ({"type": "orbit", ...}) plus optional limits.
        try:
            control = parse_control(body)
            camera = reg.apply_control(
                camera_id,
                control,
                body.get("limits"),
                make_active=body.get("makeActive") is True,
            )
        except CameraError as e:
            raise _http_error(e) from e
        return camera_to_dict(camera)

    @app.get("/api/cameras/{camera_id}/uniform")
    def get_camera_uniform(camera_id: str, aspect: float | None = None) -> dict[str, Any]:
        camera = reg.get_camera(camera_id)
        if camera is None:
            raise HTTPException(status_code=404, detail="Unknown camera")
        return camera_uniform_to_dict(to_camera_uniform(camera, aspect))

    @app.get("/api/render-plan")
    def get_render_plan(
        mode: str = "single",
        enabled_only: bool = Query(True, alias="enabledOnly"),
        include_matrices: bool = Query(True, alias="includeMatrices"),
        max_parallel_views: int | None = Query(None, alias="maxParallelViews"),
        camera_ids: str | None = Query(None, alias="cameraIds"),
    ) -> dict[str, Any]:
        ids = [cid.strip() for cid in camera_ids.split(",") if cid.strip()] if camera_ids else None
        plan = reg.create_render_plan(
            mode=mode,
            enabled_only=enabled_only,
            include_matrices=include_matrices,
            max_parallel_views=max_parallel_views,
            camera_ids=ids,
        )
        return render_plan_to_dict(plan)

    return app


__all__ = ["create_api_app"]
