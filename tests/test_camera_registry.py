from __future__ import annotations

import logging
import math

import numpy as np
import pytest

from multicam.core.controls import Orbit
from multicam.core.errors import (
    DuplicateIdError,
    EmptyIdError,
    InvalidListenerError,
    UnknownCameraError,
)
from multicam.core.registry import CameraRegistry, CameraSnapshot
from multicam.core.settings import RegistrySettings


class _Clock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        self.now += 1.0
        return self.now


def _registry(**kwargs) -> CameraRegistry:
    kwargs.setdefault("settings", RegistrySettings())
    return CameraRegistry(**kwargs)


def _seed_three(reg: CameraRegistry) -> None:
    reg.register_camera(
        {
            "id": "main",
            "priority": 100,
            "transform": {"position": [0, 3, 8], "target": [0, 0, 0]},
            "projection": {"kind": "perspective", "fovY": 60, "near": 0.1, "far": 1500, "aspect": 16 / 9},
        }
    )
    reg.register_camera(
        {
            "id": "map",
            "priority": 20,
            "transform": {"position": [0, 40, 0], "target": [0, 0, 0], "up": [0, 0, -1]},
            "projection": {"kind": "orthographic", "left": -30, "right": 30, "top": 30, "bottom": -30},
            "viewport": {"x": 0.75, "y": 0.75, "width": 0.25, "height": 0.25},
        }
    )
    reg.register_camera(
        {
            "id": "rear",
            "priority": 80,
            "transform": {"position": [0, 2, -6], "target": [0, 0, 0]},
            "projection": {"kind": "perspective", "fovY": 70, "near": 0.1, "far": 1000, "aspect": 16 / 9},
        }
    )


def test_multi_camera_registration_and_active_switching() -> None:
    reg = _registry(max_parallel_views=2, max_hot_cameras=2)
    _seed_three(reg)

    reg.activate_camera("map")
    plan = reg.create_render_plan(mode="multiview")
    assert plan.mode == "multiview"
    assert plan.total_views == 3
    assert len(plan.batches) == 2
    assert plan.batches[0].parallel is True
    assert plan.batches[0].views[0].camera_id == "map"
    assert plan.batches[0].views[1].camera_id == "main"

    switched = reg.switch_camera(1)
    assert switched is not None and switched.id == "main"
    assert reg.get_snapshot().active_camera_id == "main"
    assert reg.get_snapshot().hot_camera_ids == ("main", "map")


def test_first_registered_camera_becomes_active_and_ids_are_generated() -> None:
    reg = _registry()
    first = reg.register_camera()
    second = reg.register_camera({"priority": 5})

    assert first.id == "camera-1"
    assert second.id == "camera-2"
    assert first.revision == 0
    assert reg.get_snapshot().active_camera_id == "camera-1"


def test_register_rejects_duplicate_and_blank_ids() -> None:
    reg = _registry()
    reg.register_camera({"id": "cam"})

    with pytest.raises(DuplicateIdError):
        reg.register_camera({"id": "cam"})
    with pytest.raises(DuplicateIdError):
        reg.register_camera({"id": "  cam  "})
    with pytest.raises(EmptyIdError):
        reg.register_camera({"id": "   "})
    assert [c.id for c in reg.list_cameras()] == ["cam"]


def test_update_merges_fields_and_bumps_revision() -> None:
    clock = _Clock()
    reg = _registry(time_source=clock)
    reg.register_camera(
        {
            "id": "cam",
            "transform": {"position": [1, 2, 3], "target": [0, 0, 0]},
            "projection": {"kind": "perspective", "fovY": 50, "near": 0.5, "far": 50},
        }
    )
    reg.register_camera({"id": "other"})

    updated = reg.update_camera("cam", {"transform": {"target": [0, 1, 0]}, "projection": {"fovY": 75}})

    assert updated.transform.position == (1.0, 2.0, 3.0)
    assert updated.transform.target == (0.0, 1.0, 0.0)
    assert updated.projection.fov_y == 75.0
    assert updated.projection.near == 0.5
    assert updated.revision == 1
    assert 1000.0 < updated.touched_at < clock.now

    again = reg.update_camera("other", {"id": "renamed", "priority": 7, "makeActive": True})
    assert again.id == "other"
    assert again.priority == 7.0
    assert reg.get_snapshot().active_camera_id == "other"

    with pytest.raises(UnknownCameraError):
        reg.update_camera("ghost", {"priority": 1})


def test_update_can_switch_projection_kind() -> None:
    reg = _registry()
    reg.register_camera({"id": "cam", "projection": {"near": 0.3, "far": 30}})
    ortho = reg.update_camera("cam", {"projection": {"kind": "orthographic", "left": -5, "right": 5}})

    assert ortho.projection.kind == "orthographic"
    assert ortho.projection.left == -5.0
    assert ortho.projection.near == 0.3
    assert ortho.projection.far == 30.0


def test_upsert_updates_existing_or_registers() -> None:
    reg = _registry()
    created = reg.upsert_camera({"id": "cam", "priority": 1})
    updated = reg.upsert_camera({"id": "cam", "priority": 9})

    assert created.revision == 0
    assert updated.revision == 1
    assert updated.priority == 9.0
    assert len(reg.list_cameras()) == 1


def test_remove_active_camera_promotes_fallback() -> None:
    reg = _registry()
    reg.register_camera({"id": "first"})
    reg.register_camera({"id": "disabled", "priority": 10, "enabled": False})
    reg.register_camera({"id": "enabled", "priority": 1})

    assert reg.remove_camera("first") is True
    snap = reg.get_snapshot()
    assert snap.active_camera_id == "enabled"
    assert "first" not in snap.hot_camera_ids

    assert reg.remove_camera("enabled") is True
    assert reg.get_snapshot().active_camera_id == "disabled"

    assert reg.remove_camera("disabled") is True
    assert reg.get_snapshot().active_camera_id is None
    assert reg.remove_camera("disabled") is False


def test_remove_active_with_one_other_enabled_camera() -> None:
    reg = _registry()
    reg.register_camera({"id": "a"})
    reg.register_camera({"id": "b"})
    reg.remove_camera("a")
    assert reg.get_snapshot().active_camera_id == "b"


def test_switch_cycles_canonical_order_and_wraps() -> None:
    reg = _registry()
    for cid, prio in (("c", 1), ("a", 5), ("b", 5), ("d", 3)):
        reg.register_camera({"id": cid, "priority": prio})
    reg.register_camera({"id": "off", "priority": 100, "enabled": False})

    reg.activate_camera("a")
    seen = [reg.switch_camera(1).id for _ in range(4)]  # type: ignore[union-attr]
    assert seen == ["b", "d", "c", "a"]

    backward = reg.switch_camera(-1)
    assert backward is not None and backward.id == "c"

    reg.activate_camera("off")
    assert reg.switch_camera(1).id == "a"  # type: ignore[union-attr]

    reg.activate_camera("c")
    assert reg.switch_camera(1, enabled_only=False).id == "off"  # type: ignore[union-attr]


def test_switch_with_no_candidates_returns_none() -> None:
    reg = _registry()
    assert reg.switch_camera(1) is None

    reg.register_camera({"id": "off", "enabled": False})
    version = reg.version
    assert reg.switch_camera(1) is None
    assert reg.version == version


def test_hot_list_is_bounded_mru_without_duplicates() -> None:
    reg = _registry(max_hot_cameras=3)
    for cid in ("a", "b", "c", "d"):
        reg.register_camera({"id": cid})
    assert reg.get_snapshot().hot_camera_ids == ("d", "c", "b")

    reg.activate_camera("b")
    assert reg.get_snapshot().hot_camera_ids == ("b", "d", "c")

    reg.apply_control("a", {"type": "pan", "delta": [1, 0, 0]})
    hot = reg.get_snapshot().hot_camera_ids
    assert hot == ("a", "b", "d")
    assert len(set(hot)) == len(hot)


def test_revision_grows_on_every_touch() -> None:
    reg = _registry()
    cam = reg.register_camera({"id": "cam", "transform": {"position": [0, 0, 10]}})
    revisions = [cam.revision]
    revisions.append(reg.update_camera("cam", {"priority": 1}).revision)
    revisions.append(reg.apply_control("cam", Orbit(delta_azimuth=0.1)).revision)
    revisions.append(reg.activate_camera("cam").revision)
    revisions.append(reg.apply_control("cam", {"type": "dolly", "distance": 1}).revision)

    assert revisions[0] >= 0
    assert all(b >= a + 1 for a, b in zip(revisions, revisions[1:]))


def test_apply_control_stores_result_and_can_activate() -> None:
    clock = _Clock()
    reg = _registry(time_source=clock)
    reg.register_camera({"id": "main"})
    reg.register_camera({"id": "side", "transform": {"position": [0, 0, 10], "target": [0, 0, 0]}})

    moved = reg.apply_control("side", {"type": "orbit", "deltaAzimuth": math.pi / 2}, make_active=True)

    assert np.allclose(moved.transform.position, [10.0, 0.0, 0.0], atol=1e-6)
    assert 1000.0 < moved.touched_at < clock.now
    stored = reg.get_camera("side")
    assert stored is not None and stored.transform == moved.transform
    assert reg.get_snapshot().active_camera_id == "side"

    with pytest.raises(UnknownCameraError):
        reg.apply_control("ghost", {"type": "pan"})


def test_subscribers_receive_snapshot_after_each_mutation() -> None:
    reg = _registry()
    received: list[CameraSnapshot] = []
    unsubscribe = reg.subscribe(received.append)

    reg.register_camera({"id": "a"})
    reg.register_camera({"id": "b"})
    reg.activate_camera("b")

    assert [s.version for s in received] == [1, 2, 3]
    assert received[-1].active_camera_id == "b"
    assert received[-1].version == reg.version

    unsubscribe()
    unsubscribe()
    reg.remove_camera("a")
    assert len(received) == 3

    with pytest.raises(InvalidListenerError):
        reg.subscribe("not callable")  # type: ignore[arg-type]


def test_version_only_moves_on_mutation() -> None:
    reg = _registry()
    reg.register_camera({"id": "a"})
    v = reg.version

    reg.get_snapshot()
    reg.list_cameras()
    reg.create_render_plan()
    assert reg.remove_camera("ghost") is False
    assert reg.version == v

    reg.clear()
    assert reg.version == v + 1
    snap = reg.get_snapshot()
    assert snap.cameras == ()
    assert snap.active_camera_id is None
    assert snap.hot_camera_ids == ()


def test_returned_values_do_not_alias_registry_state() -> None:
    reg = _registry()
    meta = {"tags": ["hero"]}
    cam = reg.register_camera({"id": "cam", "metadata": meta})

    meta["tags"].append("input")
    assert cam.metadata is not None
    cam.metadata["tags"].append("returned")

    snap = reg.get_snapshot()
    snap.cameras[0].metadata["tags"].append("snapshot")  # type: ignore[index]

    assert reg.get_camera("cam").metadata == {"tags": ["hero"]}  # type: ignore[union-attr]


def test_snapshot_is_canonically_ordered() -> None:
    reg = _registry()
    reg.register_camera({"id": "low", "priority": 1})
    reg.register_camera({"id": "b", "priority": 50})
    reg.register_camera({"id": "a", "priority": 50})

    snap = reg.get_snapshot()
    assert [c.id for c in snap.cameras] == ["a", "b", "low"]
    assert [c.id for c in reg.list_cameras(enabled_only=True)] == ["a", "b", "low"]
    assert reg.has_camera("a") and not reg.has_camera("zzz")


def test_render_plan_uses_registry_defaults_and_clock() -> None:
    clock = _Clock(start=5000.0)
    reg = _registry(max_parallel_views=3, time_source=clock)
    _seed_three(reg)

    plan = reg.create_render_plan(mode="multiview")
    assert plan.max_parallel_views == 3
    assert plan.generated_at == clock.now
    assert [v.camera_id for v in plan.views()] == ["main", "rear", "map"]
    assert all(v.hot for v in plan.views())

    narrow = reg.create_render_plan(mode="multiview", max_parallel_views=1)
    assert len(narrow.batches) == 3


def test_time_source_fallback() -> None:
    reg = _registry(time_source=lambda: float("nan"))
    cam = reg.register_camera({"id": "cam"})
    assert math.isfinite(cam.touched_at)
    assert cam.touched_at > 0


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MULTICAM_MAX_PARALLEL_VIEWS", "4")
    monkeypatch.setenv("MULTICAM_MAX_HOT_CAMERAS", "not-a-number")

    settings = RegistrySettings.from_env()
    assert settings.max_parallel_views == 4
    assert settings.max_hot_cameras == 3

    reg = CameraRegistry()
    assert reg.max_parallel_views == 4

    explicit = CameraRegistry(max_parallel_views=0, max_hot_cameras=2)
    assert explicit.max_parallel_views == 1
    assert explicit.max_hot_cameras == 2


def test_unsupported_patch_is_logged_and_still_touches(caplog: pytest.LogCaptureFixture) -> None:
    reg = _registry()
    reg.register_camera({"id": "cam", "priority": 3})

    with caplog.at_level(logging.DEBUG, logger="multicam.core.registry"):
        touched = reg.update_camera("cam", 42)

    assert touched.priority == 3.0
    assert touched.revision == 1
    assert any("unsupported patch" in r.getMessage() and "cam" in r.getMessage() for r in caplog.records)
