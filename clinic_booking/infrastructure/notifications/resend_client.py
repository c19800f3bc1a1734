from __future__ import annotations

import logging

import httpx


class ResendEmailClient:
    def __init__(
        self,
        api_key: str,
        sender: str,
        base_url: str = "https://api.resend.com",
        client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=10.0)
        self._logger = logging.getLogger(__name__)

    def send(self, to: str | list[str], subject: str, text: str) -> str | None:
        """Send a plain-text email. Returns the provider message id."""
        payload = {
            "from": self._sender,
            "to": to if isinstance(to, list) else [to],
            "subject": subject,
            "text": text,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}
        resp = self._client.post(f"{self._base_url}/emails", json=payload, headers=headers)
        if resp.status_code >= 400:
            self._logger.error(
                "Resend send failed",
                extra={"status": resp.status_code, "error": resp.text[:500]},
            )
            resp.raise_for_status()
        return resp.json().get("id")
