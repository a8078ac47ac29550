import json
import sys

import multicam
from multicam.api.serializers import render_plan_to_dict, snapshot_to_dict
from multicam.util.logging import setup_logging


def build_registry() -> multicam.CameraRegistry:
    registry = multicam.CameraRegistry(max_parallel_views=2, max_hot_cameras=3)

    registry.register_camera(
        {
            "id": "main",
            "priority": 100,
            "transform": {"position": [0, 3, 8], "target": [0, 0, 0], "up": [0, 1, 0]},
            "projection": {"kind": "perspective", "fovY": 60, "near": 0.1, "far": 1500, "aspect": 16 / 9},
        }
    )
    registry.register_camera(
        {
            "id": "map",
            "priority": 40,
            "transform": {"position": [0, 35, 0], "target": [0, 0, 0], "up": [0, 0, -1]},
            "projection": {
                "kind": "orthographic",
                "left": -40,
                "right": 40,
                "top": 40,
                "bottom": -40,
                "near": 0.1,
                "far": 200,
            },
            "viewport": {"x": 0.72, "y": 0.72, "width": 0.26, "height": 0.26},
        }
    )
    registry.register_camera(
        {
            "id": "rear",
            "priority": 80,
            "transform": {"position": [0, 2, -7], "target": [0, 0, 0], "up": [0, 1, 0]},
            "projection": {"kind": "perspective", "fovY": 70, "near": 0.1, "far": 1000, "aspect": 16 / 9},
        }
    )
    return registry


def main() -> None:
    setup_logging()
    registry = build_registry()

    registry.subscribe(
        lambda snap: print(f"version={snap.version} active={snap.active_camera_id} hot={list(snap.hot_camera_ids)}")
    )

    if "--serve" in sys.argv:
        from multicam.api.server import serve

        serve(registry)
        return

    registry.switch_camera(1)
    registry.apply_control("main", {"type": "orbit", "deltaAzimuth": 0.5})

    summary = snapshot_to_dict(registry.get_snapshot())
    print(json.dumps({k: summary[k] for k in ("activeCameraId", "hotCameraIds", "version")}, indent=2))

    plan = registry.create_render_plan(mode="multiview", include_matrices=False)
    print(json.dumps(render_plan_to_dict(plan), indent=2))


if __name__ == "__main__":
    main()
