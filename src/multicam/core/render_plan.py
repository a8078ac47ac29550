"""Render plan compiler.

A render plan is a point-in-time description of which cameras the renderer should draw
this frame, grouped into batches of views that may be rendered simultaneously.

Selection order:
1. explicit `camera_ids` (unknown ids dropped), or every camera in canonical order
   (priority descending, id ascending);
2. disabled cameras removed when `enabled_only`;
3. the active camera moved to the front;
4. truncated to one camera in `single` mode;
5. split into consecutive batches of at most `max_parallel_views`.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Any, Iterator, Literal, Sequence

import numpy as np

from .cameras import Camera, Viewport, field_of, finite_float, normalize_camera, sorted_cameras
from .matrices import build_projection_matrix, build_view_matrix


RenderMode = Literal["single", "multiview"]


@dataclass(frozen=True)
class RenderView:
    camera_id: str
    order: int
    priority: float
    revision: int
    hot: bool
    viewport: Viewport
    view_matrix: np.ndarray | None = None  # float32 (16,)
    projection_matrix: np.ndarray | None = None  # float32 (16,)


@dataclass(frozen=True)
class RenderBatch:
    index: int
    parallel: bool
    views: tuple[RenderView, ...]


@dataclass(frozen=True)
class RenderPlan:
    mode: RenderMode
    generated_at: float
    active_camera_id: str | None
    hot_camera_ids: tuple[str, ...]
    max_parallel_views: int
    total_views: int
    can_render_in_parallel: bool
    batches: tuple[RenderBatch, ...]

    def views(self) -> Iterator[RenderView]:
        for batch in self.batches:
            yield from batch.views


def promote_active(cameras: list[Camera], active_camera_id: str | None) -> list[Camera]:
    if not active_camera_id:
        return cameras
    index = next((i for i, c in enumerate(cameras) if c.id == active_camera_id), -1)
    if index <= 0:
        return cameras
    promoted = list(cameras)
    promoted.insert(0, promoted.pop(index))
    return promoted


def _as_list(value: Any) -> list[Any]:
    if value is None or isinstance(value, (str, bytes)):
        return []
    try:
        return list(value)
    except TypeError:
        return []


def _build_view(camera: Camera, order: int, hot_ids: set[str], include_matrices: bool) -> RenderView:
    view_matrix = None
    projection_matrix = None
    if include_matrices:
        view_matrix = build_view_matrix(camera)
        # Each viewport gets a projection matching its own on-screen aspect.
        projection_matrix = build_projection_matrix(camera, camera.viewport.aspect)
    return RenderView(
        camera_id=camera.id,
        order=order,
        priority=camera.priority,
        revision=camera.revision,
        hot=camera.id in hot_ids,
        viewport=camera.viewport,
        view_matrix=view_matrix,
        projection_matrix=projection_matrix,
    )


def create_render_plan(
    snapshot: Any,
    *,
    mode: str = "single",
    enabled_only: bool = True,
    include_matrices: bool = True,
    max_parallel_views: int | None = None,
    camera_ids: Sequence[str] | None = None,
    generated_at: float | None = None,
) -> RenderPlan:
    """Compile a render plan from a camera snapshot.

    `snapshot` is a `CameraSnapshot` or any mapping/object exposing `cameras`,
    `active_camera_id`, `hot_camera_ids` and optionally `max_parallel_views`.
    """
    plan_mode: RenderMode = "multiview" if mode == "multiview" else "single"
    default_parallel = finite_float(field_of(snapshot, "max_parallel_views"), 1.0)
    parallel = max(1, int(math.floor(finite_float(max_parallel_views, default_parallel))))

    by_id: dict[str, Camera] = {}
    cameras: list[Camera] = []
    for raw in _as_list(field_of(snapshot, "cameras")):
        camera = normalize_camera(raw, field_of(raw, "id"))
        by_id[camera.id] = camera
        cameras.append(camera)

    requested = _as_list(camera_ids)
    if requested:
        selected = [by_id[str(cid)] for cid in requested if str(cid) in by_id]
    else:
        selected = sorted_cameras(cameras)

    if enabled_only:
        selected = [c for c in selected if c.enabled]

    raw_active = field_of(snapshot, "active_camera_id")
    active_camera_id = str(raw_active) if raw_active is not None else None
    selected = promote_active(selected, active_camera_id)

    if plan_mode == "single":
        selected = selected[:1]

    hot_camera_ids = tuple(dict.fromkeys(str(cid) for cid in _as_list(field_of(snapshot, "hot_camera_ids"))))
    hot_set = set(hot_camera_ids)

    batches: list[RenderBatch] = []
    for start in range(0, len(selected), parallel):
        chunk = selected[start : start + parallel]
        batches.append(
            RenderBatch(
                index=len(batches),
                parallel=len(chunk) > 1,
                views=tuple(_build_view(c, order, hot_set, include_matrices) for order, c in enumerate(chunk)),
            )
        )

    return RenderPlan(
        mode=plan_mode,
        generated_at=finite_float(generated_at, time.time() * 1000.0),
        active_camera_id=active_camera_id,
        hot_camera_ids=hot_camera_ids,
        max_parallel_views=parallel,
        total_views=len(selected),
        can_render_in_parallel=plan_mode == "multiview" and any(b.parallel for b in batches),
        batches=tuple(batches),
    )
