from __future__ import annotations

import logging

import httpx


logger = logging.getLogger(__name__)

WIN_ENDPOINT = "/integrations/sketchquest-win"


class RewardClient:
    """Notifies the external reward service about match winners."""

    def __init__(
        self,
        api_base: str,
        secret: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_base = (api_base or "").rstrip("/")
        self.secret = secret
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_base)

    def notify_winner(self, username: str) -> bool:
        username = (username or "").strip()
        if not username:
            return False
        if not self.enabled:
            logger.debug("Reward webhook disabled; not notifying %s", username)
            return False

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(
                    f"{self.api_base}{WIN_ENDPOINT}",
                    json={"username": username},
                    headers={"x-game-secret": self.secret},
                )
        except httpx.HTTPError as exc:
            logger.error("Reward webhook failed for %s: %s", username, exc)
            return False

        if resp.is_error:
            logger.error("Reward webhook rejected %s (%s): %s", username, resp.status_code, resp.text)
            return False

        logger.info("Reward sent to %s", username)
        return True
