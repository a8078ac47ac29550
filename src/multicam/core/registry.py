from __future__ import annotations

import itertools
import math
import threading
import time
from dataclasses import asdict, dataclass, is_dataclass, replace
from typing import Any, Callable, Mapping, Sequence

from ..util.logging import get_logger
from .cameras import (
    Camera,
    camera_to_mapping,
    clone_camera,
    field_of,
    finite_float,
    normalize_camera,
    snake_keys,
    sorted_cameras,
)
from .controls import ControlLimits, apply_camera_control
from .errors import DuplicateIdError, InvalidListenerError, UnknownCameraError
from .render_plan import RenderPlan, create_render_plan
from .settings import RegistrySettings


logger = get_logger("core.registry")


@dataclass(frozen=True)
class CameraSnapshot:
    """Point-in-time copy of the registry state, cameras in canonical order."""

    cameras: tuple[Camera, ...]
    active_camera_id: str | None
    hot_camera_ids: tuple[str, ...]
    version: int
    updated_at: float
    max_parallel_views: int
    max_hot_cameras: int


Listener = Callable[[CameraSnapshot], Any]


def _patch_mapping(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return snake_keys(value)
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return {}


def _positive_int(value: Any, default: int) -> int:
    return max(1, int(math.floor(finite_float(value, default))))


class CameraRegistry:
    """Owns every registered camera, the active pointer and the hot-camera MRU list.

    Notes:
    - Every mutation bumps `version` and then calls each listener with a fresh
      snapshot before returning, all while holding the registry lock.
    - Values returned to callers never alias internal state.
    """

    def __init__(
        self,
        *,
        max_parallel_views: int | None = None,
        max_hot_cameras: int | None = None,
        time_source: Callable[[], float] | None = None,
        settings: RegistrySettings | None = None,
    ) -> None:
        base = settings if settings is not None else RegistrySettings.from_env()
        self._max_parallel_views = _positive_int(max_parallel_views, base.max_parallel_views)
        self._max_hot_cameras = _positive_int(max_hot_cameras, base.max_hot_cameras)
        self._time_source = time_source

        self._lock = threading.RLock()
        self._cameras: dict[str, Camera] = {}
        self._listeners: dict[int, Listener] = {}
        self._listener_tokens = itertools.count(1)
        self._sequence = 0
        self._active_camera_id: str | None = None
        self._hot_camera_ids: list[str] = []
        self._version = 0
        self._updated_at = self._now()

    @property
    def max_parallel_views(self) -> int:
        return self._max_parallel_views

    @property
    def max_hot_cameras(self) -> int:
        return self._max_hot_cameras

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def _now(self) -> float:
        if callable(self._time_source):
            value = finite_float(self._time_source(), 0.0)
            if value:
                return value
        return time.time() * 1000.0

    def _require_locked(self, camera_id: str) -> Camera:
        camera = self._cameras.get(camera_id)
        if camera is None:
            raise UnknownCameraError(camera_id)
        return camera

    def _mark_hot_locked(self, camera_id: str) -> None:
        ids = [camera_id] + [cid for cid in self._hot_camera_ids if cid != camera_id]
        self._hot_camera_ids = ids[: self._max_hot_cameras]

    def _fallback_active_locked(self) -> str | None:
        ordered = sorted_cameras(self._cameras.values())
        for camera in ordered:
            if camera.enabled:
                return camera.id
        return ordered[0].id if ordered else None

    def _snapshot_locked(self) -> CameraSnapshot:
        return CameraSnapshot(
            cameras=tuple(clone_camera(c) for c in sorted_cameras(self._cameras.values())),
            active_camera_id=self._active_camera_id,
            hot_camera_ids=tuple(self._hot_camera_ids),
            version=self._version,
            updated_at=self._updated_at,
            max_parallel_views=self._max_parallel_views,
            max_hot_cameras=self._max_hot_cameras,
        )

    def _bump_version_locked(self) -> None:
        self._version += 1
        self._updated_at = self._now()
        if not self._listeners:
            return
        snapshot = self._snapshot_locked()
        for listener in list(self._listeners.values()):
            listener(snapshot)

    def register_camera(self, definition: Any = None) -> Camera:
        """Add a camera; the first one ever registered becomes active.

        Raises DuplicateIdError if the id is taken and EmptyIdError if it is blank.
        """
        with self._lock:
            self._sequence += 1
            camera = normalize_camera(definition if definition is not None else {}, f"camera-{self._sequence}")
            if camera.id in self._cameras:
                raise DuplicateIdError(camera.id)

            camera = replace(camera, touched_at=self._now())
            self._cameras[camera.id] = camera
            if self._active_camera_id is None:
                self._active_camera_id = camera.id
            self._mark_hot_locked(camera.id)
            logger.debug("Registered camera %s (active=%s)", camera.id, self._active_camera_id)
            self._bump_version_locked()
            return clone_camera(camera)

    def update_camera(self, camera_id: str, patch: Any = None, *, make_active: bool = False) -> Camera:
        """Merge `patch` over a camera.

        transform/projection/viewport are merged field by field; enabled, priority and
        metadata are replaced when present. The id never changes.
        """
        with self._lock:
            current = self._require_locked(camera_id)
            changes = _patch_mapping(patch)
            if patch is not None and not changes:
                logger.debug("Ignoring empty or unsupported patch for camera %s: %r", camera_id, patch)

            merged = camera_to_mapping(current)
            for key in ("transform", "projection", "viewport"):
                if changes.get(key) is not None:
                    merged[key] = {**merged[key], **_patch_mapping(changes[key])}
            for key in ("enabled", "priority", "metadata"):
                if key in changes:
                    merged[key] = changes[key]
            merged["id"] = current.id

            updated = replace(
                normalize_camera(merged, current.id),
                revision=current.revision + 1,
                touched_at=self._now(),
            )
            self._cameras[current.id] = updated
            self._mark_hot_locked(current.id)
            if make_active or changes.get("make_active") is True:
                self._active_camera_id = current.id
            self._bump_version_locked()
            return clone_camera(updated)

    def upsert_camera(self, definition: Any = None) -> Camera:
        with self._lock:
            raw_id = field_of(definition, "id")
            camera_id = str(raw_id).strip() if raw_id is not None else ""
            if camera_id and camera_id in self._cameras:
                return self.update_camera(camera_id, definition)
            return self.register_camera(definition)

    def remove_camera(self, camera_id: str) -> bool:
        with self._lock:
            if camera_id not in self._cameras:
                return False

            del self._cameras[camera_id]
            self._hot_camera_ids = [cid for cid in self._hot_camera_ids if cid != camera_id]
            if self._active_camera_id == camera_id:
                self._active_camera_id = self._fallback_active_locked()
                logger.debug("Removed active camera %s; fallback is %s", camera_id, self._active_camera_id)
            else:
                logger.debug("Removed camera %s", camera_id)
            self._bump_version_locked()
            return True

    def activate_camera(self, camera_id: str) -> Camera:
        with self._lock:
            current = self._require_locked(camera_id)
            updated = replace(current, revision=current.revision + 1, touched_at=self._now())
            self._cameras[current.id] = updated
            self._active_camera_id = current.id
            self._mark_hot_locked(current.id)
            logger.debug("Activated camera %s", current.id)
            self._bump_version_locked()
            return clone_camera(updated)

    def switch_camera(self, direction: float = 1, *, enabled_only: bool = True) -> Camera | None:
        """Cycle the active camera through the canonical order, wrapping around.

        A negative `direction` steps backward. Returns None when there is nothing to
        switch to.
        """
        with self._lock:
            candidates = sorted_cameras(self._cameras.values())
            if enabled_only:
                candidates = [c for c in candidates if c.enabled]
            if not candidates:
                return None

            ids = [c.id for c in candidates]
            if self._active_camera_id in ids:
                step = 1 if finite_float(direction, 1.0) >= 0 else -1
                next_index = (ids.index(self._active_camera_id) + step) % len(ids)
            else:
                next_index = 0
            return self.activate_camera(ids[next_index])

    def apply_control(
        self,
        camera_id: str,
        control: Any,
        limits: ControlLimits | Mapping[str, Any] | None = None,
        *,
        make_active: bool = False,
    ) -> Camera:
        with self._lock:
            current = self._require_locked(camera_id)
            updated = apply_camera_control(current, control, limits, touched_at=self._now())
            self._cameras[current.id] = updated
            self._mark_hot_locked(current.id)
            if make_active:
                self._active_camera_id = current.id
            self._bump_version_locked()
            return clone_camera(updated)

    def has_camera(self, camera_id: str) -> bool:
        with self._lock:
            return camera_id in self._cameras

    def get_camera(self, camera_id: str) -> Camera | None:
        with self._lock:
            camera = self._cameras.get(camera_id)
            return clone_camera(camera) if camera is not None else None

    def list_cameras(self, *, enabled_only: bool = False) -> list[Camera]:
        with self._lock:
            cameras = sorted_cameras(self._cameras.values())
            if enabled_only:
                cameras = [c for c in cameras if c.enabled]
            return [clone_camera(c) for c in cameras]

    def get_snapshot(self) -> CameraSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def create_render_plan(
        self,
        *,
        mode: str = "single",
        enabled_only: bool = True,
        include_matrices: bool = True,
        max_parallel_views: int | None = None,
        camera_ids: Sequence[str] | None = None,
    ) -> RenderPlan:
        with self._lock:
            snapshot = self._snapshot_locked()
            generated_at = self._now()
        return create_render_plan(
            snapshot,
            mode=mode,
            enabled_only=enabled_only,
            include_matrices=include_matrices,
            max_parallel_views=max_parallel_views if max_parallel_views is not None else self._max_parallel_views,
            camera_ids=camera_ids,
            generated_at=generated_at,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(snapshot)` after every mutation; returns an unsubscribe function."""
        if not callable(listener):
            raise InvalidListenerError(listener)
        with self._lock:
            token = next(self._listener_tokens)
            self._listeners[token] = listener

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(token, None)

        return unsubscribe

    def clear(self) -> None:
        with self._lock:
            self._cameras.clear()
            self._active_camera_id = None
            self._hot_camera_ids = []
            logger.debug("Cleared camera registry")
            self._bump_version_locked()


REGISTRY = CameraRegistry()
