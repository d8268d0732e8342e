from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kidscurator.app.services.content_filter import FILTER_POLICIES
from kidscurator.app.services.curation_service import (
    DEFAULT_CHANNEL_QUERY_TEMPLATE,
    DEFAULT_SEARCH_QUERY_PREFIX,
    DEFAULT_SEARCH_QUERY_SUFFIX,
)
from kidscurator.app.services.search_client import (
    DEFAULT_CLIENT_NAME,
    DEFAULT_CLIENT_VERSION,
    DEFAULT_SEARCH_ENDPOINT_URL,
)

DEFAULT_DATA_DIR = ".kids-curator"
_BOOLEAN_COERCION_FIELDS: tuple[str, ...] = (
    "telemetry_enabled",
    "channel_match_ascii_word_chars",
)


def _resolve_path(value: str | Path) -> Path:
    return Path(value).expanduser().resolve()


def _parse_bool_with_default(value: Any, *, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value == 1:
            return True
        if value == 0:
            return False
        return default
    if not isinstance(value, str):
        return default

    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _normalize_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if normalized:
        return normalized
    return None


class AppSettings(BaseSettings):
    """
    Runtime configuration, read from `KIDS_CURATOR_*` environment variables
    (or a local `.env` file).
    """

    model_config = SettingsConfigDict(
        env_prefix="KIDS_CURATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Logging and telemetry.
    log_dir: Path = Field(
        default=Path(DEFAULT_DATA_DIR) / "logs",
        description="Directory for application and telemetry log files.",
    )
    log_level: str = Field(
        default="INFO",
        description="Console log level; the file log always records DEBUG.",
    )
    telemetry_enabled: bool = Field(
        default=True,
        description="Emit structured telemetry events.",
    )
    telemetry_sink: Literal["none", "log"] = Field(
        default="log",
        description="Telemetry destination. `log` writes to the telemetry log file.",
    )

    # Outbound search protocol.
    search_endpoint_url: str = Field(
        default=DEFAULT_SEARCH_ENDPOINT_URL,
        description="Platform search endpoint receiving fresh and continuation requests.",
    )
    search_api_key: str | None = Field(
        default=None,
        description="Optional key appended as `key=` to the search endpoint URL.",
    )
    search_client_name: str = Field(
        default=DEFAULT_CLIENT_NAME,
        description="Client name sent in the request context object.",
    )
    search_client_version: str = Field(
        default=DEFAULT_CLIENT_VERSION,
        description="Client version sent in the request context object.",
    )
    search_http_timeout_seconds: float | None = Field(
        default=None,
        description="Socket timeout for outbound search calls. Unset means no adapter timeout.",
    )

    # Query shaping and page sizes.
    search_query_prefix: str = Field(
        default=DEFAULT_SEARCH_QUERY_PREFIX,
        description="Text placed before the caller query for general search.",
    )
    search_query_suffix: str = Field(
        default=DEFAULT_SEARCH_QUERY_SUFFIX,
        description="Text placed after the caller query for general search.",
    )
    channel_query_template: str = Field(
        default=DEFAULT_CHANNEL_QUERY_TEMPLATE,
        description="Search text for channel lookups; `{channel}` is replaced by the name.",
    )
    search_first_page_limit: int = Field(
        default=25,
        description="Maximum raw items extracted from a fresh general search.",
    )
    channel_first_page_limit: int = Field(
        default=50,
        description="Maximum raw items extracted from a fresh channel lookup.",
    )
    continuation_page_limit: int = Field(
        default=50,
        description="Maximum raw items extracted from a continuation response.",
    )

    # Filtering.
    search_policy: str = Field(
        default="general",
        description="Named filter policy for general search.",
    )
    channel_policy: str = Field(
        default="channel",
        description="Named filter policy for channel lookups.",
    )
    channel_match_min_containment_length: int = Field(
        default=5,
        description="Normalized channel names longer than this may match by containment.",
    )
    channel_match_ascii_word_chars: bool = Field(
        default=True,
        description="Normalize channel names with ASCII-only word characters.",
    )

    # Pagination cache eviction.
    pagination_cache_max_entries: int | None = Field(
        default=None,
        description="Evict the oldest written query keys beyond this count. Unset is unbounded.",
    )
    pagination_cache_ttl_seconds: float | None = Field(
        default=None,
        description="Drop continuation tokens older than this. Unset never expires.",
    )

    @field_validator("log_dir", mode="before")
    @classmethod
    def _normalize_paths(cls, value: Any) -> Any:
        if value is None:
            return None
        return _resolve_path(value)

    @field_validator(*_BOOLEAN_COERCION_FIELDS, mode="before")
    @classmethod
    def _normalize_booleans(cls, value: Any, info: ValidationInfo) -> bool:
        field_name = info.field_name
        assert field_name is not None
        default_value = cls.model_fields[field_name].default
        assert isinstance(default_value, bool)
        return _parse_bool_with_default(value, default=default_value)

    @field_validator("search_api_key", mode="before")
    @classmethod
    def _normalize_optional_strings(cls, value: Any) -> str | None:
        return _normalize_optional_text(value)

    @field_validator(
        "search_http_timeout_seconds",
        "pagination_cache_max_entries",
        "pagination_cache_ttl_seconds",
        mode="before",
    )
    @classmethod
    def _blank_as_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("search_endpoint_url", mode="before")
    @classmethod
    def _normalize_endpoint_url(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("KIDS_CURATOR_SEARCH_ENDPOINT_URL must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("KIDS_CURATOR_SEARCH_ENDPOINT_URL must not be empty.")
        return normalized

    @field_validator("search_policy", "channel_policy", mode="before")
    @classmethod
    def _normalize_policy_names(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


def _validate_curation_configuration(settings: AppSettings) -> None:
    errors: list[str] = []

    for env_name, policy_name in (
        ("KIDS_CURATOR_SEARCH_POLICY", settings.search_policy),
        ("KIDS_CURATOR_CHANNEL_POLICY", settings.channel_policy),
    ):
        if policy_name not in FILTER_POLICIES:
            known = ", ".join(sorted(FILTER_POLICIES))
            errors.append(f"{env_name}={policy_name!r} is not a known policy ({known}).")
    if "{channel}" not in settings.channel_query_template:
        errors.append("KIDS_CURATOR_CHANNEL_QUERY_TEMPLATE must contain `{channel}`.")
    for env_name, limit in (
        ("KIDS_CURATOR_SEARCH_FIRST_PAGE_LIMIT", settings.search_first_page_limit),
        ("KIDS_CURATOR_CHANNEL_FIRST_PAGE_LIMIT", settings.channel_first_page_limit),
        ("KIDS_CURATOR_CONTINUATION_PAGE_LIMIT", settings.continuation_page_limit),
    ):
        if limit < 1:
            errors.append(f"{env_name} must be at least 1.")

    if errors:
        bullets = "\n".join(f"- {message}" for message in errors)
        raise ValueError(f"Invalid curation configuration:\n{bullets}")


def load_settings() -> AppSettings:
    settings = AppSettings()
    settings = settings.model_copy(update={"log_dir": _resolve_path(settings.log_dir)})
    _validate_curation_configuration(settings)
    return settings
