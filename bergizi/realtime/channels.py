"""Redis pub/sub channel names.

Every publisher and subscriber builds channel names through these
helpers so the naming scheme lives in one place.

Channel layout:
    dashboard-update-{sppg_id}       → dashboard section updates
    notification-{sppg_id}           → tenant-wide notifications
    system-alert                     → platform-wide alerts
    menu:{sppg_id}                   → menu CRUD events (SSE)
    sppg:{sppg_id}:{domain}          → per-domain events
    user:{user_id}:notifications     → per-user notification events
"""

from __future__ import annotations

from typing import Literal

DASHBOARD_PREFIX = "dashboard-update-"
NOTIFICATION_PREFIX = "notification-"
SYSTEM_ALERT_CHANNEL = "system-alert"

# Patterns the WebSocket relay psubscribes to
BRIDGE_PATTERNS: tuple[str, ...] = (
    f"{DASHBOARD_PREFIX}*",
    f"{NOTIFICATION_PREFIX}*",
    SYSTEM_ALERT_CHANNEL,
)

SPPG_DOMAINS = frozenset(
    {"inventory", "distribution", "hr", "production", "procurement", "notifications"}
)

ChannelKind = Literal["dashboard-update", "notification", "system-alert"]


def dashboard_channel(sppg_id: str) -> str:
    return f"{DASHBOARD_PREFIX}{sppg_id}"


def notification_channel(sppg_id: str) -> str:
    return f"{NOTIFICATION_PREFIX}{sppg_id}"


def menu_channel(sppg_id: str) -> str:
    return f"menu:{sppg_id}"


def sppg_channel(sppg_id: str, domain: str) -> str:
    """Return the per-domain channel for an SPPG.

    Raises:
        ValueError: If ``domain`` is not a known SPPG domain.
    """
    if domain not in SPPG_DOMAINS:
        raise ValueError(f"Unknown SPPG channel domain: {domain!r}")
    return f"sppg:{sppg_id}:{domain}"


def user_notification_channel(user_id: str) -> str:
    return f"user:{user_id}:notifications"


def parse_bridge_channel(channel: str) -> tuple[ChannelKind, str | None]:
    """Split a bridge channel into its kind and SPPG id.

    Matching is on the known prefix, so SPPG ids containing ``-`` are
    returned intact.

    Returns:
        (kind, sppg_id). ``sppg_id`` is None for ``system-alert``.

    Raises:
        ValueError: If the channel is not one the relay handles.
    """
    if channel == SYSTEM_ALERT_CHANNEL:
        return "system-alert", None
    if channel.startswith(DASHBOARD_PREFIX) and len(channel) > len(DASHBOARD_PREFIX):
        return "dashboard-update", channel[len(DASHBOARD_PREFIX) :]
    if channel.startswith(NOTIFICATION_PREFIX) and len(channel) > len(NOTIFICATION_PREFIX):
        return "notification", channel[len(NOTIFICATION_PREFIX) :]
    raise ValueError(f"Not a bridge channel: {channel!r}")
