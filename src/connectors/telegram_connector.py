from __future__ import annotations

from dataclasses import dataclass

import requests


TELEGRAM_API = "https://api.telegram.org"


@dataclass
class TelegramConnector:
    bot_token: str = ""
    chat_id: str = ""
    timeout: float = 10.0

    name: str = "telegram"

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    def send(self, message: str, subject: str = "") -> bool:
        # Subject is an email concept; Telegram gets the message body only.
        resp = requests.post(
            f"{TELEGRAM_API}/bot{self.bot_token}/sendMessage",
            json={"chat_id": self.chat_id, "text": message},
            timeout=self.timeout,
        )
        return resp.ok
