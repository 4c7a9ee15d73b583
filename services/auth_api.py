from __future__ import annotations

from typing import Any, Dict

from services.api_client import ApiClient


class AuthApi:
    def __init__(self, client: ApiClient):
        self.client = client

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        # backend expects "username"; the body is returned bare (no envelope):
        # {accessToken, refreshToken, userId, name, email, userType, ...}
        return await self.client.post("/api/auth/login", json={"username": email, "password": password})

    async def logout(self) -> Any:
        headers = {"Refresh-Token": self.client.refresh_token} if self.client.refresh_token else None
        return await self.client.request("POST", "/api/auth/logout", headers=headers)
