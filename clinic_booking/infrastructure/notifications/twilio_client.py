from __future__ import annotations

import logging

import httpx


class TwilioSmsClient:
    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        sender: str,
        base_url: str = "https://api.twilio.com/2010-04-01",
        client: httpx.Client | None = None,
    ) -> None:
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._sender = sender
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=10.0)
        self._logger = logging.getLogger(__name__)

    def send(self, to: str, body: str) -> str | None:
        """Send an SMS. Returns the message SID."""
        url = f"{self._base_url}/Accounts/{self._account_sid}/Messages.json"
        resp = self._client.post(
            url,
            data={"From": self._sender, "To": to, "Body": body},
            auth=(self._account_sid, self._auth_token),
        )
        if resp.status_code >= 400:
            try:
                error_json = resp.json()
                error_code = error_json.get("code")
                error_message = error_json.get("message")
            except Exception:
                error_code = None
                error_message = resp.text
            self._logger.error(
                "Twilio send failed",
                extra={"status": resp.status_code, "reason": error_code, "error": error_message},
            )
            resp.raise_for_status()
        return resp.json().get("sid")
