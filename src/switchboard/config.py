"""Switchboard configuration — loads from switchboard.yaml + .env."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_yaml_config() -> dict[str, Any]:
    """Load switchboard.yaml from SWITCHBOARD_CONFIG_PATH or default locations."""
    config_path = os.getenv("SWITCHBOARD_CONFIG_PATH")
    search_paths = (
        [Path(config_path)]
        if config_path
        else [
            Path("/etc/switchboard/switchboard.yaml"),
            Path("switchboard.yaml"),
        ]
    )
    for path in search_paths:
        if path.exists():
            with open(path) as f:
                return yaml.safe_load(f) or {}
    return {}


def _split_list(value: Any) -> list[str]:
    """Accept JSON arrays, comma-separated strings, or real sequences."""
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except ValueError:
                parsed = None
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        return [item.strip() for item in text.split(",") if item.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if str(item).strip()]
    return [str(value).strip()] if str(value).strip() else []


class LLMConfig(BaseSettings):
    """Chat completion provider configuration (LiteLLM)."""

    model: str = Field(default="openai/gpt-4o-mini", description="LiteLLM model identifier")
    api_key: str = Field(default="", description="API key for the LLM provider")
    api_base: str | None = Field(default=None, description="Custom API base URL")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=800, gt=0)
    presence_penalty: float = Field(default=0.1, ge=-2.0, le=2.0)
    frequency_penalty: float = Field(default=0.1, ge=-2.0, le=2.0)
    history_turns: int = Field(default=8, ge=0, description="Conversation turns sent upstream")
    fallback_models: Annotated[list[str], NoDecode] = Field(default_factory=list)

    @field_validator("fallback_models", mode="before")
    @classmethod
    def _parse_fallback_models(cls, value: Any) -> list[str]:
        return _split_list(value)

    model_config = SettingsConfigDict(env_prefix="SWITCHBOARD_LLM_")


class GoogleClassroomConfig(BaseSettings):
    """Google Classroom credentials."""

    api_key: str = ""
    access_token: str = ""
    base_url: str = "https://classroom.googleapis.com/v1"

    model_config = SettingsConfigDict(env_prefix="GOOGLE_")


class TwilioConfig(BaseSettings):
    """Twilio voice + SMS credentials."""

    account_sid: str = ""
    auth_token: str = ""
    from_number: str = ""
    default_voice: str = Field(default="alice", description="Voice used when a call omits one")
    base_url: str = "https://api.twilio.com/2010-04-01"

    model_config = SettingsConfigDict(env_prefix="TWILIO_")


class ResendConfig(BaseSettings):
    """Resend email credentials."""

    api_key: str = ""
    from_address: str = "AI Agent Team <agents@resend.dev>"
    base_url: str = "https://api.resend.com"

    model_config = SettingsConfigDict(env_prefix="RESEND_")


class PerplexityConfig(BaseSettings):
    """Perplexity web research credentials."""

    api_key: str = ""
    base_url: str = "https://api.perplexity.ai"

    model_config = SettingsConfigDict(env_prefix="PERPLEXITY_")


class TrelloConfig(BaseSettings):
    """Trello task board credentials."""

    api_key: str = ""
    token: str = ""
    base_url: str = "https://api.trello.com/1"

    model_config = SettingsConfigDict(env_prefix="TRELLO_")


class DocumentStoreConfig(BaseSettings):
    """Blob + metadata store used by document analysis."""

    url: str = ""
    service_role_key: str = ""
    table: str = "documents"
    bucket: str = "agent-documents"

    model_config = SettingsConfigDict(env_prefix="SUPABASE_")


class ProbeConfig(BaseSettings):
    """Capability probing configuration."""

    timeout_s: float | None = Field(
        default=None,
        gt=0,
        description="Per-probe timeout. None leaves timeouts to the transport",
    )
    phone_number: str = "+1234567890"
    email: str = "test@example.com"

    model_config = SettingsConfigDict(env_prefix="SWITCHBOARD_PROBE_")


class ProvidersConfig(BaseModel):
    """Credentials for every external provider."""

    classroom: GoogleClassroomConfig = Field(default_factory=GoogleClassroomConfig)
    twilio: TwilioConfig = Field(default_factory=TwilioConfig)
    resend: ResendConfig = Field(default_factory=ResendConfig)
    perplexity: PerplexityConfig = Field(default_factory=PerplexityConfig)
    trello: TrelloConfig = Field(default_factory=TrelloConfig)
    documents: DocumentStoreConfig = Field(default_factory=DocumentStoreConfig)


class SwitchboardConfig(BaseSettings):
    """Root Switchboard configuration."""

    # Server
    host: str = Field(default="0.0.0.0", description="Server bind host")
    port: int = Field(default=8000, description="Server bind port")
    cors_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])

    # Outbound HTTP
    http_timeout_s: float = Field(default=30.0, gt=0, description="Provider request timeout")

    # Sub-configs
    llm: LLMConfig = Field(default_factory=LLMConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="'json' or 'console'")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: Any) -> list[str]:
        return _split_list(value)

    model_config = SettingsConfigDict(
        env_prefix="SWITCHBOARD_",
        env_nested_delimiter="__",
    )

    @classmethod
    def load(cls) -> SwitchboardConfig:
        """Load config from YAML + env vars (env takes precedence)."""
        yaml_cfg = _load_yaml_config()

        llm_data = yaml_cfg.pop("llm", {})
        providers_data = yaml_cfg.pop("providers", {})
        probe_data = yaml_cfg.pop("probe", {})

        # Only pass YAML sub-configs if they have data;
        # otherwise let pydantic-settings pick up env vars
        kwargs: dict[str, Any] = {**yaml_cfg}
        if llm_data:
            kwargs["llm"] = LLMConfig(**llm_data)
        if providers_data:
            kwargs["providers"] = ProvidersConfig(**providers_data)
        if probe_data:
            kwargs["probe"] = ProbeConfig(**probe_data)

        return cls(**kwargs)


# Singleton
_config: SwitchboardConfig | None = None


def get_config() -> SwitchboardConfig:
    """Get or create the global config."""
    global _config
    if _config is None:
        _config = SwitchboardConfig.load()
    return _config
