from __future__ import annotations

import uvicorn

from ..core.registry import CameraRegistry
from ..util.logging import get_logger
from . import create_api_app


logger = get_logger("api.server")


def serve(registry: CameraRegistry | None = None, *, host: str = "127.0.0.1", port: int = 8765) -> None:
    """Serve the camera panel API until interrupted."""
    app = create_api_app(registry)
    logger.info("Serving camera panel API on http://%s:%d", host, port)
    uvicorn.run(app, host=host, port=int(port), log_level="warning")
