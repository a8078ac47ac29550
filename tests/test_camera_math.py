from __future__ import annotations

import math

import numpy as np

from multicam.core.cameras import (
    Camera,
    OrthographicProjection,
    PerspectiveProjection,
    Transform,
    normalize_projection,
)
from multicam.core.matrices import build_projection_matrix, build_view_matrix, to_camera_uniform


def _as_4x4(m: np.ndarray) -> np.ndarray:
    # Matrices are stored column-major.
    return np.asarray(m, dtype=np.float64).reshape(4, 4, order="F")


def test_view_matrix_translation_and_layout() -> None:
    camera = {
        "id": "main",
        "transform": {"position": [0, 0, 10], "target": [0, 0, 0], "up": [0, 1, 0]},
    }
    view = build_view_matrix(camera)

    assert view.shape == (16,)
    assert view.dtype == np.float32
    assert np.isclose(view[14], -10.0)
    assert np.allclose(_as_4x4(view)[:3, :3], np.eye(3), atol=1e-6)


def test_view_matrix_maps_target_onto_negative_z() -> None:
    transform = Transform(position=(3.0, 4.0, 5.0), target=(1.0, -2.0, 0.5), up=(0.0, 1.0, 0.0))
    m = _as_4x4(build_view_matrix(transform))
    target_cam = m @ np.array([1.0, -2.0, 0.5, 1.0])
    dist = float(np.linalg.norm(np.array([2.0, 6.0, 4.5])))

    assert np.allclose(target_cam[:2], 0.0, atol=1e-4)
    assert np.isclose(target_cam[2], -dist, atol=1e-4)


def test_view_matrix_degenerate_up_is_finite_and_orthonormal() -> None:
    for up in ([0, 1, 0], [0, -1, 0], [0, 0, 0]):
        view = build_view_matrix({"position": [0, 40, 0], "target": [0, 0, 0], "up": up})
        assert np.all(np.isfinite(view))
        rot = _as_4x4(view)[:3, :3]
        assert np.allclose(rot @ rot.T, np.eye(3), atol=1e-5)

    same_point = build_view_matrix({"position": [1, 1, 1], "target": [1, 1, 1]})
    assert np.all(np.isfinite(same_point))


def test_matrices_stay_finite_for_extreme_finite_input() -> None:
    camera = {
        "transform": {"position": [1e300, -1e300, 1e300], "target": [-1e300, 1e300, -1e300], "up": [1e-300, 0, 0]},
        "projection": {"kind": "perspective", "fovY": 1e-9, "near": 1e-300, "far": 1e300, "aspect": 1e-300},
    }
    assert np.all(np.isfinite(build_view_matrix(camera)))
    assert np.all(np.isfinite(build_projection_matrix(camera)))
    assert np.all(np.isfinite(build_projection_matrix(camera, 1e300)))

    ortho = {"projection": {"kind": "orthographic", "left": 5, "right": 5, "top": 1, "bottom": 1, "near": 3, "far": 3}}
    assert np.all(np.isfinite(build_projection_matrix(ortho, 0.0)))


def test_perspective_matrix_values() -> None:
    projection = PerspectiveProjection(fov_y=90.0, near=1.0, far=3.0, aspect=2.0)
    m = build_projection_matrix(projection)

    assert np.isclose(m[0], 0.5)
    assert np.isclose(m[5], 1.0)
    assert np.isclose(m[10], -2.0)
    assert np.isclose(m[11], -1.0)
    assert np.isclose(m[14], -3.0)

    overridden = build_projection_matrix(projection, 1.0)
    assert np.isclose(overridden[0], 1.0)


def test_wide_perspective_has_smaller_horizontal_scale() -> None:
    camera = {"projection": {"kind": "perspective", "fovY": 60, "near": 0.1, "far": 100, "aspect": 2}}
    m = build_projection_matrix(camera)
    assert m[0] < m[5]


def test_orthographic_rescales_horizontal_extent_to_viewport_aspect() -> None:
    projection = OrthographicProjection(left=-10.0, right=10.0, top=10.0, bottom=-10.0, near=0.1, far=100.0)

    base = build_projection_matrix(projection)
    wide = build_projection_matrix(projection, 2.0)

    assert np.isclose(base[0], 0.1)
    assert np.isclose(wide[0], 0.05)
    assert np.isclose(wide[5], base[5])
    assert np.isclose(wide[15], 1.0)


def test_near_equal_far_is_coerced() -> None:
    m = build_projection_matrix({"projection": {"near": 1.0, "far": 1.0}})
    assert np.all(np.isfinite(m))


def test_far_stays_beyond_near_for_large_depths() -> None:
    for near in (1.0, 1e10, 1e12, 1e300, 1.7e308):
        for kind in ("perspective", "orthographic"):
            p = normalize_projection({"kind": kind, "near": near, "far": 1.0})
            assert p.near >= near * (1 - 1e-12)
            assert p.far > p.near
            assert math.isfinite(p.far)
    assert np.all(np.isfinite(build_projection_matrix({"projection": {"near": 1e12, "far": 1.0}})))


def test_camera_uniform_bundles_matrices_and_depth_range() -> None:
    camera = Camera(
        id="main",
        transform=Transform(position=(0.0, 0.0, 10.0), target=(0.0, 0.0, 0.0)),
        projection=PerspectiveProjection(fov_y=60.0, near=0.1, far=100.0, aspect=2.0),
    )
    uniform = to_camera_uniform(camera)

    assert uniform.camera_id == "main"
    assert uniform.view_matrix.shape == (16,)
    assert uniform.projection_matrix.shape == (16,)
    assert np.allclose(uniform.position, [0.0, 0.0, 10.0])
    assert np.isclose(uniform.near, 0.1)
    assert np.isclose(uniform.far, 100.0)
    assert uniform.projection_kind == "perspective"
    assert not uniform.view_matrix.flags.writeable


def test_camera_uniform_tolerates_missing_input() -> None:
    uniform = to_camera_uniform({})
    assert uniform.camera_id == ""
    assert uniform.projection_kind == "perspective"
    assert np.allclose(uniform.position, [0.0, 0.0, 5.0])
    assert np.all(np.isfinite(uniform.projection_matrix))

    garbage = to_camera_uniform({"id": 7, "transform": "nope", "projection": {"kind": "fisheye", "near": "x"}})
    assert garbage.camera_id == "7"
    assert np.isclose(garbage.near, 0.1)
