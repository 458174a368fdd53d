# services/notifications.py
from __future__ import annotations

import logging

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.db import DeviceToken

_LOG = logging.getLogger(__name__)


class PushNotifier:
    """
    Device-token lookup plus a thin client for the push gateway.

    With no gateway URL configured, notifications are logged and dropped.
    """

    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        gateway_url: str | None = None,
        gateway_key: str | None = None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._sessions = sessions
        self._gateway_url = gateway_url
        self._gateway_key = gateway_key
        self._timeout = timeout
        self._transport = transport

    async def get_user_token(self, user_id: str) -> str | None:
        async with self._sessions() as session:
            row = await session.get(DeviceToken, user_id)
            return row.token if row else None

    async def register_token(self, user_id: str, token: str, platform: str | None = None) -> None:
        async with self._sessions() as session:
            async with session.begin():
                row = (
                    await session.execute(
                        select(DeviceToken).where(DeviceToken.user_id == user_id)
                    )
                ).scalar_one_or_none()
                if row is None:
                    session.add(DeviceToken(user_id=user_id, token=token, platform=platform))
                else:
                    row.token = token
                    row.platform = platform

    async def send_notification(self, token: str, message: str, title: str | None = None) -> None:
        if not self._gateway_url:
            _LOG.info("push gateway not configured; dropping notification: %s", message)
            return

        headers = {"Content-Type": "application/json"}
        if self._gateway_key:
            headers["Authorization"] = f"Bearer {self._gateway_key}"
        payload = {
            "token": token,
            "notification": {"title": title or "Reminder", "body": message},
        }
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as http:
            r = await http.post(self._gateway_url, json=payload, headers=headers)
        r.raise_for_status()
