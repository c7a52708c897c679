"""Server entry point: runs the app under uvicorn."""

from __future__ import annotations

from tailcast.config import TailConfig


def run_server(config: TailConfig, *, log_level: str = "info") -> None:
    """Start the FastAPI server with uvicorn."""
    import uvicorn

    from tailcast.server.app import create_app

    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=log_level,
    )
