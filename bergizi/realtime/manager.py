"""WebSocket connection manager for tenant-scoped event delivery.

Tracks one ClientConnection per client id. Messages relayed from Redis
are routed to clients of the same SPPG that subscribed to the channel
kind or event type; system alerts go to everyone. Dead connections are
cleaned up on send failure and stale ones by the periodic sweep.

The module-level ``manager`` instance is a singleton shared across
the FastAPI application.

Client protocol (JSON text frames):
    -> {"type": "SUBSCRIBE", "channels": ["dashboard-update", "notification"]}
    -> {"type": "UNSUBSCRIBE", "channels": ["notification"]}
    -> {"type": "PING"}                      <- {"type": "PONG", "timestamp": ...}
    <- {"type": "CONNECTED", "clientId": ..., ...}  on connect
    <- {"type": "PING", "timestamp": ...}            every heartbeat interval
"""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from fastapi import WebSocket

from bergizi.common.config import get_settings
from bergizi.common.logging import get_logger
from bergizi.common.metrics import WS_CONNECTIONS_ACTIVE, WS_MESSAGES_SENT_TOTAL
from bergizi.realtime.channels import parse_bridge_channel

logger = get_logger("REALTIME")


def _iso_now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class ClientConnection:
    """State kept for one connected WebSocket client."""

    websocket: WebSocket
    sppg_id: str
    user_id: str
    subscriptions: set[str] = field(default_factory=set)
    last_ping: float = field(default_factory=time.monotonic)
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class ConnectionManager:
    """Manages active WebSocket clients and tenant-scoped routing.

    Safe for a single asyncio event loop (FastAPI's default).
    Supports multiple connections from the same user (e.g., multiple tabs).
    """

    def __init__(self, client_timeout: float | None = None) -> None:
        self._clients: dict[str, ClientConnection] = {}
        if client_timeout is None:
            client_timeout = get_settings().realtime_client_timeout_seconds
        self.client_timeout = client_timeout

    async def connect(
        self,
        websocket: WebSocket,
        sppg_id: str,
        user_id: str = "anonymous",
    ) -> str:
        """Accept a WebSocket connection, track it and greet the client.

        Returns:
            The generated client id, ``{sppg_id}-{12 hex chars}``.
        """
        await websocket.accept()
        client_id = f"{sppg_id}-{uuid.uuid4().hex[:12]}"
        self._clients[client_id] = ClientConnection(
            websocket=websocket,
            sppg_id=sppg_id,
            user_id=user_id,
        )
        WS_CONNECTIONS_ACTIVE.inc()
        logger.info(
            "WebSocket client connected",
            extra={
                "data": {
                    "client_id": client_id,
                    "sppg_id": sppg_id,
                    "active_connections": len(self._clients),
                }
            },
        )

        await self.send_to_client(
            client_id,
            {
                "type": "CONNECTED",
                "message": "WebSocket connection established",
                "clientId": client_id,
                "timestamp": _iso_now(),
            },
        )
        return client_id

    def disconnect(self, client_id: str) -> None:
        """Stop tracking a client. Unknown ids are ignored."""
        client = self._clients.pop(client_id, None)
        if client is None:
            return
        WS_CONNECTIONS_ACTIVE.dec()
        logger.info(
            "WebSocket client disconnected",
            extra={
                "data": {
                    "client_id": client_id,
                    "sppg_id": client.sppg_id,
                    "active_connections": len(self._clients),
                }
            },
        )

    def get_client(self, client_id: str) -> ClientConnection | None:
        return self._clients.get(client_id)

    async def handle_client_message(self, client_id: str, raw: str) -> None:
        """Apply one client frame. Malformed frames are logged and ignored."""
        client = self._clients.get(client_id)
        if client is None:
            return

        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning(
                "Ignoring non-JSON client message",
                extra={"data": {"client_id": client_id}},
            )
            return
        if not isinstance(message, dict):
            logger.warning(
                "Ignoring non-object client message",
                extra={"data": {"client_id": client_id}},
            )
            return

        msg_type = message.get("type")
        if msg_type in ("SUBSCRIBE", "UNSUBSCRIBE"):
            channels = message.get("channels")
            if not isinstance(channels, list):
                logger.warning(
                    "Ignoring subscription change without a channel list",
                    extra={"data": {"client_id": client_id, "type": msg_type}},
                )
                return
            names = {str(c) for c in channels}
            if msg_type == "SUBSCRIBE":
                client.subscriptions |= names
            else:
                client.subscriptions -= names
            logger.debug(
                "Client subscriptions changed",
                extra={
                    "data": {
                        "client_id": client_id,
                        "subscriptions": sorted(client.subscriptions),
                    }
                },
            )
        elif msg_type == "PING":
            client.last_ping = time.monotonic()
            await self.send_to_client(client_id, {"type": "PONG", "timestamp": _iso_now()})
        else:
            logger.warning(
                "Unknown client message type",
                extra={"data": {"client_id": client_id, "type": msg_type}},
            )

    async def send_to_client(self, client_id: str, payload: dict[str, Any]) -> bool:
        """Serialize and send a payload to one client.

        Returns:
            True on success. On failure the client is disconnected and
            False is returned.
        """
        client = self._clients.get(client_id)
        if client is None:
            return False
        try:
            await client.websocket.send_text(json.dumps(payload))
        except Exception as exc:
            logger.warning(
                "Send to client failed",
                extra={"data": {"client_id": client_id, "error": str(exc)}},
            )
            self.disconnect(client_id)
            return False
        WS_MESSAGES_SENT_TOTAL.labels(event_type=str(payload.get("type", "unknown"))).inc()
        return True

    async def route(self, channel: str, message: str) -> int:
        """Forward a relayed Redis message verbatim to interested clients.

        Args:
            channel: Bridge channel the message arrived on.
            message: Raw JSON string as published.

        Returns:
            Number of clients the message was sent to.
        """
        try:
            kind, sppg_id = parse_bridge_channel(channel)
        except ValueError:
            logger.warning(
                "Dropping message on unknown channel",
                extra={"data": {"channel": channel}},
            )
            return 0

        event_type = "unknown"
        try:
            parsed = json.loads(message)
            if isinstance(parsed, dict) and parsed.get("type"):
                event_type = str(parsed["type"])
        except (json.JSONDecodeError, TypeError):
            pass

        if kind == "system-alert":
            targets = list(self._clients)
        else:
            wanted = {kind, event_type.lower()}
            targets = [
                cid
                for cid, c in self._clients.items()
                if c.sppg_id == sppg_id and c.subscriptions & wanted
            ]

        return await self._send_raw(targets, message, event_type)

    async def broadcast(self, message: str) -> int:
        """Send a raw message to every connected client."""
        event_type = "unknown"
        try:
            parsed = json.loads(message)
            if isinstance(parsed, dict):
                event_type = str(parsed.get("type", "unknown"))
        except (json.JSONDecodeError, TypeError):
            pass
        return await self._send_raw(list(self._clients), message, event_type)

    async def _send_raw(self, client_ids: list[str], message: str, event_type: str) -> int:
        sent = 0
        dead: list[str] = []
        for cid in client_ids:
            client = self._clients.get(cid)
            if client is None:
                continue
            try:
                await client.websocket.send_text(message)
                WS_MESSAGES_SENT_TOTAL.labels(event_type=event_type).inc()
                sent += 1
            except Exception:
                dead.append(cid)

        for cid in dead:
            self.disconnect(cid)
        return sent

    async def sweep(self, now: float | None = None) -> list[str]:
        """Close stale clients and ping the rest.

        A client is stale when its last PING is older than
        ``client_timeout`` seconds.

        Returns:
            Ids of the clients removed as stale.
        """
        if now is None:
            now = time.monotonic()

        removed: list[str] = []
        for cid, client in list(self._clients.items()):
            if now - client.last_ping > self.client_timeout:
                logger.info("Removing stale client", extra={"data": {"client_id": cid}})
                try:
                    await client.websocket.close(code=1000, reason="Ping timeout")
                except Exception as exc:
                    logger.debug(
                        "Close on stale client failed",
                        extra={"data": {"client_id": cid, "error": str(exc)}},
                    )
                self.disconnect(cid)
                removed.append(cid)
                continue
            await self.send_to_client(cid, {"type": "PING", "timestamp": _iso_now()})
        return removed

    def stats(self) -> dict[str, Any]:
        by_sppg: dict[str, int] = {}
        for client in self._clients.values():
            by_sppg[client.sppg_id] = by_sppg.get(client.sppg_id, 0) + 1
        return {"totalClients": len(self._clients), "clientsBySppg": by_sppg}

    async def close_all(self) -> None:
        """Close every client with 1000 "Server shutdown"."""
        for cid, client in list(self._clients.items()):
            try:
                await client.websocket.close(code=1000, reason="Server shutdown")
            except Exception as exc:
                logger.debug(
                    "Close on shutdown failed",
                    extra={"data": {"client_id": cid, "error": str(exc)}},
                )
            self.disconnect(cid)

    @property
    def active_count(self) -> int:
        """Return the number of active connections."""
        return len(self._clients)


# Module-level singleton
manager = ConnectionManager()
