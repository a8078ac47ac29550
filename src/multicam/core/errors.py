from __future__ import annotations

from typing import Any


class CameraError(Exception):
    """Base class for every error raised by the camera registry and its helpers."""


class EmptyIdError(CameraError, ValueError):
    def __init__(self) -> None:
        super().__init__("Camera id cannot be empty")


class DuplicateIdError(CameraError, ValueError):
    def __init__(self, camera_id: str) -> None:
        self.camera_id = camera_id
        super().__init__(f"Camera '{camera_id}' is already registered")


class UnknownCameraError(CameraError, KeyError):
    def __init__(self, camera_id: Any) -> None:
        self.camera_id = camera_id
        super().__init__(camera_id)

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the argument.
        return f"Unknown camera '{self.camera_id}'"


class InvalidControlError(CameraError, ValueError):
    def __init__(self, kind: Any) -> None:
        self.kind = kind
        super().__init__(f"Unknown camera control {kind!r}")


class InvalidListenerError(CameraError, TypeError):
    def __init__(self, listener: Any) -> None:
        self.listener = listener
        super().__init__(f"Listener must be callable, got {type(listener).__name__}")
