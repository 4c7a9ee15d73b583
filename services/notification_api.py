from __future__ import annotations

from typing import Any, Dict

from services.api_client import ApiClient


class NotificationApi:
    def __init__(self, client: ApiClient):
        self.client = client

    async def get_unread_count(self) -> Dict[str, Any]:
        return await self.client.get("/api/notifications/unread-count")


def unread_count_from(response: Any) -> int:
    # {success, data: {unreadCount}} or a bare {unreadCount} / {count}
    if not isinstance(response, dict):
        return 0
    body = response.get("data") if isinstance(response.get("data"), dict) else response
    for key in ("unreadCount", "count"):
        value = body.get(key)
        if value is not None:
            try:
                return int(value)
            except (TypeError, ValueError):
                return 0
    return 0
