"""Process-wide bridge configuration, validated once at startup."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError
from pydantic_settings import BaseSettings, SettingsConfigDict

REQUIRED_FIELDS = (
    "wecom_token",
    "wecom_aes_key",
    "corp_id",
    "corp_secret",
    "openclaw_token",
)

# WeCom EncodingAESKey is 43 base64 characters (32 bytes without padding)
_AES_KEY_LENGTH = 43


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, missing: list[str], invalid: list[str] | None = None) -> None:
        self.missing = missing
        self.invalid = invalid or []
        parts = []
        if self.missing:
            parts.append(f"Missing required environment variables: {', '.join(self.missing)}")
        if self.invalid:
            parts.append(f"Invalid environment variables: {', '.join(self.invalid)}")
        super().__init__("; ".join(parts))


def _default_sessions_dir() -> Path:
    return Path.home() / ".openclaw" / "agents" / "main" / "sessions"


class BridgeSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    wecom_token: str
    wecom_aes_key: str
    corp_id: str
    corp_secret: str
    agent_id: int = 1000000
    openclaw_token: str
    openclaw_host: str = "127.0.0.1"
    openclaw_port: int = Field(default=18789, gt=0, lt=65536)
    bridge_port: int = Field(default=3000, gt=0, lt=65536)
    sessions_dir: Path = Field(default_factory=_default_sessions_dir)
    wecom_api_base: str = "https://qyapi.weixin.qq.com/cgi-bin"
    reply_timeout_seconds: float = Field(default=60.0, gt=0)
    log_level: str = "INFO"

    @field_validator(*REQUIRED_FIELDS)
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise PydanticCustomError("missing", "Field required")
        return value

    @field_validator("wecom_aes_key")
    @classmethod
    def _aes_key_length(cls, value: str) -> str:
        if len(value) != _AES_KEY_LENGTH:
            raise ValueError(f"must be {_AES_KEY_LENGTH} characters")
        return value

    @field_validator("sessions_dir")
    @classmethod
    def _expand_sessions_dir(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def openclaw_url(self) -> str:
        return f"http://{self.openclaw_host}:{self.openclaw_port}"

    def redacted(self) -> dict[str, object]:
        """Settings as a dict with secrets masked, safe for printing."""
        secrets = {"wecom_token", "wecom_aes_key", "corp_secret", "openclaw_token"}
        data = self.model_dump(mode="json")
        for key in secrets:
            data[key] = _mask(data[key])
        return data


def _mask(value: str) -> str:
    if len(value) <= 4:
        return "****"
    return f"{value[:2]}****{value[-2:]}"


def load_settings(env_file: str | Path | None = ".env", **overrides: object) -> BridgeSettings:
    """Load and validate settings from the environment and an optional .env file.

    Raises ConfigError naming every missing or invalid variable.
    """
    try:
        return BridgeSettings(_env_file=env_file, **overrides)  # type: ignore[call-arg]
    except ValidationError as exc:
        missing: list[str] = []
        invalid: list[str] = []
        for error in exc.errors():
            name = str(error["loc"][0]).upper() if error["loc"] else "?"
            if error["type"] == "missing":
                missing.append(name)
            else:
                invalid.append(f"{name} ({error['msg']})")
        raise ConfigError(missing, invalid) from exc
