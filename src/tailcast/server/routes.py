"""Route handlers for the FastAPI server."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, WebSocket, WebSocketDisconnect, status

from tailcast import __version__
from tailcast.engine import TailEngine
from tailcast.server.auth import verify_api_key, verify_ws_api_key
from tailcast.server.models import HealthResponse

_log = logging.getLogger(__name__)

router = APIRouter()


# --- Health ---


@router.get(
    "/api/health",
    response_model=HealthResponse,
    dependencies=[Depends(verify_api_key)],
)
def health(request: Request, response: Response) -> HealthResponse:
    """Report the followed file and its read offset.

    Answers 503 with status ``error`` once the file watch has stopped.
    """
    engine: TailEngine = request.app.state.engine
    running = engine.running
    if not running:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(
        status="ok" if running else "error",
        version=__version__,
        file=str(engine.watched.path),
        accessible=engine.watched.accessible,
        subscribers=engine.hub.subscriber_count(),
        offset=engine.watched.last_known_offset,
    )


# --- WebSocket ---


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Stream the followed file: catch-up batch first, then live batches."""
    if not await verify_ws_api_key(websocket):
        await websocket.close(code=4001, reason="Unauthorized")
        return

    engine: TailEngine = websocket.app.state.engine
    await websocket.accept()
    try:
        await engine.connect(websocket)
        # Clients have nothing to say; read only to notice the disconnect.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    except Exception:
        _log.exception("WebSocket error")
    finally:
        await engine.disconnect(websocket)
