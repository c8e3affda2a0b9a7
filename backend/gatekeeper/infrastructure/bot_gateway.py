"""Bot Gateway Client — httpx-backed BotGateway executing chat-platform side effects.

Invariants:
    - Every call is best-effort: failures are logged and reported as False / None
    - Authenticated with a bearer token when one is configured
    - Never raises to callers; the verification protocol must not fail on a side effect
"""

import logging

import httpx

logger = logging.getLogger(__name__)


class HttpBotGateway:
    SERVICE = "bot_gateway"

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout_seconds,
            headers=headers, transport=transport,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, json: dict | None = None) -> httpx.Response | None:
        try:
            response = await self.client.request(method, path, json=json)
            response.raise_for_status()
            return response
        except httpx.HTTPError as e:
            logger.warning(
                "Gateway %s %s failed: %s", method, path, e,
                extra={"service": self.SERVICE, "error_code": "EXTERNAL_UNAVAILABLE"},
            )
            return None

    async def _flag(self, path: str, key: str) -> bool:
        response = await self._request("GET", path)
        if response is None:
            return False
        try:
            return bool(response.json().get(key, False))
        except ValueError:
            return False

    async def send_channel_message(self, channel_id: str, content: str) -> str | None:
        response = await self._request(
            "POST", f"/channels/{channel_id}/messages", {"content": content},
        )
        if response is None:
            return None
        try:
            message_id = response.json().get("id")
        except ValueError:
            return None
        return str(message_id) if message_id is not None else None

    async def delete_channel_message(self, channel_id: str, message_id: str) -> bool:
        response = await self._request("DELETE", f"/channels/{channel_id}/messages/{message_id}")
        return response is not None

    async def send_direct_message(self, member_id: str, content: str) -> bool:
        response = await self._request(
            "POST", f"/members/{member_id}/messages", {"content": content},
        )
        return response is not None

    async def add_role(self, member_id: str, role_id: str, reason: str) -> bool:
        response = await self._request(
            "PUT", f"/members/{member_id}/roles/{role_id}", {"reason": reason},
        )
        return response is not None

    async def has_role(self, member_id: str, role_id: str) -> bool:
        return await self._flag(f"/members/{member_id}/roles/{role_id}", "has_role")

    async def role_exists(self, role_id: str) -> bool:
        return await self._flag(f"/roles/{role_id}", "exists")

    async def set_nickname(self, member_id: str, nickname: str, reason: str) -> bool:
        response = await self._request(
            "PATCH", f"/members/{member_id}", {"nickname": nickname, "reason": reason},
        )
        return response is not None

    async def is_member_present(self, member_id: str) -> bool:
        return await self._flag(f"/members/{member_id}", "present")

    async def get_display_name(self, member_id: str) -> str | None:
        response = await self._request("GET", f"/members/{member_id}")
        if response is None:
            return None
        try:
            return response.json().get("display_name")
        except ValueError:
            return None

    async def open_discussion(self, member_id: str, moderator_id: str) -> bool:
        response = await self._request(
            "POST", "/discussions", {"member_id": member_id, "moderator_id": moderator_id},
        )
        return response is not None
