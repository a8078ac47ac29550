from __future__ import annotations

import os
from dataclasses import dataclass


DEFAULT_MAX_PARALLEL_VIEWS = 2
DEFAULT_MAX_HOT_CAMERAS = 3


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        return default


@dataclass(frozen=True)
class RegistrySettings:
    """Capacity limits of a camera registry.

    Notes:
    - `max_parallel_views` is the default batch size of render plans.
    - `max_hot_cameras` bounds the MRU list of hot cameras.
    """

    max_parallel_views: int = DEFAULT_MAX_PARALLEL_VIEWS
    max_hot_cameras: int = DEFAULT_MAX_HOT_CAMERAS

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_parallel_views", max(1, int(self.max_parallel_views)))
        object.__setattr__(self, "max_hot_cameras", max(1, int(self.max_hot_cameras)))

    @classmethod
    def from_env(cls) -> "RegistrySettings":
        return cls(
            max_parallel_views=_env_int("MULTICAM_MAX_PARALLEL_VIEWS", DEFAULT_MAX_PARALLEL_VIEWS),
            max_hot_cameras=_env_int("MULTICAM_MAX_HOT_CAMERAS", DEFAULT_MAX_HOT_CAMERAS),
        )
