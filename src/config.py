"""Runtime configuration read from environment variables at startup."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_VERIFY_TOKEN = "my_verify_token"
DEFAULT_API_BASE = "https://graph.facebook.com/v20.0"
DEFAULT_SEND_TIMEOUT = 30.0


@dataclass(frozen=True)
class Settings:
    access_token: str = ""
    phone_number_id: str = ""
    verify_token: str = DEFAULT_VERIFY_TOKEN
    api_base: str = DEFAULT_API_BASE
    send_timeout: float = DEFAULT_SEND_TIMEOUT
    audit_log_path: str | None = None
    static_dir: str | None = None

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            access_token=os.environ.get("WHATSAPP_ACCESS_TOKEN", ""),
            phone_number_id=os.environ.get("WHATSAPP_PHONE_NUMBER_ID", ""),
            verify_token=os.environ.get("WHATSAPP_VERIFY_TOKEN") or DEFAULT_VERIFY_TOKEN,
            api_base=os.environ.get("WHATSAPP_API_BASE", DEFAULT_API_BASE),
            send_timeout=float(
                os.environ.get("WHATSAPP_SEND_TIMEOUT", str(DEFAULT_SEND_TIMEOUT)),
            ),
            audit_log_path=os.environ.get("AUDIT_LOG_PATH") or None,
            static_dir=os.environ.get("UI_STATIC_DIR") or None,
        )

    def warnings(self) -> list[str]:
        """Configuration problems worth reporting; none of them stop startup."""
        problems: list[str] = []
        if self.verify_token == DEFAULT_VERIFY_TOKEN:
            problems.append(
                "WHATSAPP_VERIFY_TOKEN is not set; using the default placeholder",
            )
        if not self.access_token:
            problems.append("WHATSAPP_ACCESS_TOKEN is not set; sends will be rejected")
        if not self.phone_number_id:
            problems.append("WHATSAPP_PHONE_NUMBER_ID is not set; sends have no route")
        return problems
