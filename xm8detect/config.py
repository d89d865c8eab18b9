import os
from dataclasses import dataclass, field
from typing import Optional


def _parse_cors_origins(raw: str) -> list[str]:
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _env_optional(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value


@dataclass(frozen=True)
class Settings:
    """Process configuration, read once at startup and passed into create_app()."""

    # -----------------------------------
    # Narrative variant (OpenAI vision model)
    # -----------------------------------
    openai_api_key: Optional[str] = None
    # GPT_MODEL: vision-capable chat model, e.g. "gpt-4o" or "gpt-4o-mini"
    gpt_model: str = "gpt-4o"

    # -----------------------------------
    # Label variant (Google Cloud Vision)
    # -----------------------------------
    enable_label_detection: bool = True
    google_client_email: Optional[str] = None
    # GOOGLE_PRIVATE_KEY usually arrives with literal "\n" sequences
    google_private_key: Optional[str] = None
    google_project_id: Optional[str] = None

    # -----------------------------------
    # HTTP / uploads
    # -----------------------------------
    max_upload_mb: int = 20
    upstream_timeout_s: float = 60.0
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    port: int = 3000
    log_level: str = "INFO"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def allow_all_origins(self) -> bool:
        return self.cors_origins == ["*"]

    @property
    def has_google_credentials(self) -> bool:
        return bool(self.google_client_email and self.google_private_key)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=_env_optional("OPENAI_API_KEY"),
            gpt_model=(os.getenv("GPT_MODEL", "gpt-4o").strip() or "gpt-4o"),
            enable_label_detection=_env_flag("ENABLE_LABEL_DETECTION", "true"),
            google_client_email=_env_optional("GOOGLE_CLIENT_EMAIL"),
            google_private_key=_env_optional("GOOGLE_PRIVATE_KEY"),
            google_project_id=_env_optional("GOOGLE_PROJECT_ID"),
            max_upload_mb=int(os.getenv("MAX_UPLOAD_MB", "20")),
            upstream_timeout_s=float(os.getenv("UPSTREAM_TIMEOUT_S", "60")),
            cors_origins=_parse_cors_origins(os.getenv("CORS_ORIGINS", "*")),
            port=int(os.getenv("PORT", "3000")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
