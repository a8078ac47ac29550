from __future__ import annotations

import contextlib
from typing import Any, Callable, Iterator, Mapping, Sequence

import httpx

from .api.serializers import control_to_dict, limits_to_dict
from .core.controls import CameraControl, ControlLimits
from .core.errors import CameraError, DuplicateIdError, EmptyIdError, InvalidControlError, UnknownCameraError


class CameraPanelClient:
    """HTTP client for a running camera panel API (see `multicam.api.server.serve`).

    Responses are returned as the decoded camelCase JSON the API produces.
    Pass `http` to reuse an existing `httpx.Client` (its base URL wins).
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8765",
        *,
        http: httpx.Client | None = None,
        timeout_s: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = float(timeout_s)
        self._http = http

    @contextlib.contextmanager
    def _session(self) -> Iterator[httpx.Client]:
        if self._http is not None:
            yield self._http
            return
        with httpx.Client(base_url=self.base_url, timeout=self.timeout_s) as client:
            yield client

    @staticmethod
    def _check(
        res: httpx.Response,
        action: str,
        camera_id: str | None = None,
        invalid: Callable[[], CameraError] | None = None,
    ) -> Any:
        if res.status_code == 404 and camera_id is not None:
            raise UnknownCameraError(camera_id)
        if res.status_code == 409 and camera_id is not None:
            raise DuplicateIdError(camera_id)
        if res.status_code == 400 and invalid is not None:
            raise invalid()
        if res.status_code >= 400:
            raise RuntimeError(f"{action} failed: {res.status_code} {res.text}")
        return res.json()

    def get_version(self) -> int:
        with self._session() as client:
            data = self._check(client.get("/api/events"), "Version poll")
        return int(data.get("version", 0))

    def get_snapshot(self) -> dict[str, Any]:
        with self._session() as client:
            return self._check(client.get("/api/cameras"), "Snapshot request")

    def get_camera(self, camera_id: str) -> dict[str, Any] | None:
        with self._session() as client:
            res = client.get(f"/api/cameras/{camera_id}")
            if res.status_code == 404:
                return None
            return self._check(res, "Camera request", camera_id)

    def register_camera(self, definition: Mapping[str, Any] | None = None) -> dict[str, Any]:
        body = dict(definition or {})
        with self._session() as client:
            res = client.post("/api/cameras", json=body)
            return self._check(res, "Camera registration", body.get("id"), EmptyIdError)

    def update_camera(
        self,
        camera_id: str,
        patch: Mapping[str, Any] | None = None,
        *,
        make_active: bool = False,
    ) -> dict[str, Any]:
        body = dict(patch or {})
        if make_active:
            body["makeActive"] = True
        with self._session() as client:
            return self._check(client.patch(f"/api/cameras/{camera_id}", json=body), "Camera update", camera_id)

    def remove_camera(self, camera_id: str) -> bool:
        with self._session() as client:
            data = self._check(client.delete(f"/api/cameras/{camera_id}"), "Camera removal")
        return bool(data.get("removed"))

    def activate_camera(self, camera_id: str) -> dict[str, Any]:
        with self._session() as client:
            return self._check(client.post(f"/api/cameras/{camera_id}/activate"), "Camera activation", camera_id)

    def switch_camera(self, direction: int = 1, *, enabled_only: bool = True) -> dict[str, Any] | None:
        body = {"direction": int(direction), "enabledOnly": bool(enabled_only)}
        with self._session() as client:
            return self._check(client.post("/api/cameras/switch", json=body), "Camera switch")

    def apply_control(
        self,
        camera_id: str,
        control: CameraControl | Mapping[str, Any],
        limits: ControlLimits | Mapping[str, Any] | None = None,
        *,
        make_active: bool = False,
    ) -> dict[str, Any]:
        body = dict(control) if isinstance(control, Mapping) else control_to_dict(control)
        if limits is not None:
            body["limits"] = limits_to_dict(limits) if isinstance(limits, ControlLimits) else dict(limits)
        if make_active:
            body["makeActive"] = True
        with self._session() as client:
            res = client.post(f"/api/cameras/{camera_id}/control", json=body)
            kind = body.get("type", body.get("kind"))
            return self._check(res, "Camera control", camera_id, lambda: InvalidControlError(kind))

    def get_uniform(self, camera_id: str, *, aspect: float | None = None) -> dict[str, Any]:
        params = {"aspect": str(float(aspect))} if aspect is not None else None
        with self._session() as client:
            res = client.get(f"/api/cameras/{camera_id}/uniform", params=params)
            return self._check(res, "Uniform request", camera_id)

    def get_render_plan(
        self,
        *,
        mode: str = "single",
        enabled_only: bool = True,
        include_matrices: bool = True,
        max_parallel_views: int | None = None,
        camera_ids: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        params: dict[str, str] = {
            "mode": str(mode),
            "enabledOnly": "true" if enabled_only else "false",
            "includeMatrices": "true" if include_matrices else "false",
        }
        if max_parallel_views is not None:
            params["maxParallelViews"] = str(int(max_parallel_views))
        if camera_ids is not None:
            params["cameraIds"] = ",".join(camera_ids)
        with self._session() as client:
            return self._check(client.get("/api/render-plan", params=params), "Render plan request")
