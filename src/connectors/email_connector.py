from __future__ import annotations

from dataclasses import dataclass

import requests


RESEND_API = "https://api.resend.com/emails"


@dataclass
class EmailConnector:
    """Email delivery through the Resend HTTP API."""

    api_key: str = ""
    to: str = ""
    from_email: str = "onboarding@resend.dev"
    sender_name: str = "Polymarket Alerts"
    timeout: float = 10.0

    name: str = "email"

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.to)

    def send(self, message: str, subject: str = "") -> bool:
        resp = requests.post(
            RESEND_API,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={
                "from": f"{self.sender_name} <{self.from_email}>",
                "to": [self.to],
                "subject": subject or "Polymarket Alert",
                "text": message,
            },
            timeout=self.timeout,
        )
        return resp.ok
