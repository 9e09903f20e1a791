"""FastAPI WebSocket endpoint and connection-info routes.

Provides a WebSocket endpoint at /ws/dashboard that registers the
client with the ConnectionManager and feeds its frames into
handle_client_message until the client disconnects.

Event delivery happens through the Redis subscriber background task,
which calls manager.route() for each relayed message.

Usage:
    # In bergizi/main.py:
    from bergizi.realtime.router import router as ws_router
    app.include_router(ws_router)
"""

from __future__ import annotations

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from bergizi.common.config import get_settings
from bergizi.common.logging import get_logger
from bergizi.realtime.manager import manager

logger = get_logger("REALTIME")

router = APIRouter()


class WsActionRequest(BaseModel):
    action: str


@router.websocket("/ws/dashboard")
async def dashboard_websocket(websocket: WebSocket) -> None:
    """WebSocket endpoint for tenant dashboard updates.

    Query params:
        sppgId: Required. Tenant whose events the client receives.
        userId: Optional. Defaults to "anonymous".
    """
    sppg_id = websocket.query_params.get("sppgId")
    if not sppg_id:
        await websocket.close(code=1008, reason="Missing sppgId parameter")
        return

    user_id = websocket.query_params.get("userId") or "anonymous"
    client_id = await manager.connect(websocket, sppg_id, user_id)
    try:
        while True:
            raw = await websocket.receive_text()
            await manager.handle_client_message(client_id, raw)
    except WebSocketDisconnect:
        manager.disconnect(client_id)


def _ws_url(request: Request) -> str:
    settings = get_settings()
    if settings.ws_public_url:
        return settings.ws_public_url
    scheme = "wss" if request.url.scheme == "https" else "ws"
    return f"{scheme}://{request.url.netloc}/ws/dashboard"


@router.get("/api/ws/dashboard")
async def websocket_info(request: Request) -> dict:
    """Connection info for clients about to open the dashboard socket."""
    return {
        "success": True,
        "message": "WebSocket server is running",
        "wsUrl": _ws_url(request),
        "stats": manager.stats(),
    }


@router.post("/api/ws/dashboard")
async def websocket_action(body: WsActionRequest) -> JSONResponse:
    """Run a management action against the WebSocket server."""
    if body.action == "stats":
        return JSONResponse(content={"success": True, "stats": manager.stats()})
    return JSONResponse(status_code=400, content={"success": False, "error": "Invalid action"})
