"""Configuration loading utilities for the key broker."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .attestation.mock import EXAMPLE_TOKEN_MEDIA_TYPE
from .errors import ConfigurationError
from .paths import runtime_config_dir

CCA_MEDIA_TYPE = 'application/eat-collection; profile="http://arm.com/CCA-SSD/1.0.0"'
LOG_LEVELS = ("quiet", "error", "warn", "info", "debug", "trace")


class ServerConfig(BaseModel):
    host: str = Field(default="127.0.0.1", description="Address the HTTP API binds to")
    port: int = Field(default=8088, ge=1, le=65535)


class LoggingConfig(BaseModel):
    level: str = Field(default="info", description="quiet|error|warn|info|debug|trace")

    @field_validator("level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        level = value.strip().lower()
        if level == "warning":
            level = "warn"
        if level not in LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(LOG_LEVELS)}")
        return level

    def normalized_level(self) -> str:
        return self.level


class ChallengeConfig(BaseModel):
    ttl_seconds: float = Field(default=300.0, gt=0, description="Lifetime of an unused challenge")
    nonce_size: int = Field(default=32, ge=8, le=64)
    mock_challenge: bool = Field(
        default=False,
        description="Issue the fixed nonce of the published CCA example token (development only)",
    )


class VerifierConfig(BaseModel):
    url: str = Field(default="http://localhost:8080", description="Veraison verification service")
    timeout: float = Field(default=10.0, gt=0)
    mock: bool = Field(default=False, description="Use the in-process mock verifier")
    poll_attempts: int = Field(default=5, ge=0)
    poll_interval: float = Field(default=0.5, ge=0)


class PolicyBinding(BaseModel):
    media_type: str
    policy: str = Field(description="Built-in policy name or path to a policy document")


class AttestationConfig(BaseModel):
    policies: List[PolicyBinding] = Field(
        default_factory=lambda: [
            PolicyBinding(media_type=EXAMPLE_TOKEN_MEDIA_TYPE, policy="example"),
        ]
    )
    reference_values: Optional[Path] = Field(default=None, description="JSON file of known-good digests")

    @field_validator("policies")
    @classmethod
    def _validate_policies(cls, value: List[PolicyBinding]) -> List[PolicyBinding]:
        if not value:
            raise ValueError("at least one policy binding is required")
        return value


class KeyEntry(BaseModel):
    data: str = Field(repr=False)
    encoding: Literal["utf-8", "base64"] = "utf-8"


class AppConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    challenges: ChallengeConfig = Field(default_factory=ChallengeConfig)
    verifier: VerifierConfig = Field(default_factory=VerifierConfig)
    attestation: AttestationConfig = Field(default_factory=AttestationConfig)
    keys: Dict[str, KeyEntry] = Field(
        default_factory=lambda: {"skywalker": KeyEntry(data="May the force be with you.")}
    )


DEFAULT_CONFIG = AppConfig()


def config_search_paths(explicit: Optional[Path] = None) -> Iterable[Path]:
    if explicit:
        yield explicit
        return
    yield Path.cwd() / ".keybroker" / "config.yaml"
    yield runtime_config_dir() / "config.yaml"


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load the first configuration file found, or the defaults.

    Relative paths inside the file (reference values, policy documents) are
    resolved against the file's directory.
    """

    if path is not None and not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}")
    for candidate in config_search_paths(path):
        if not candidate.is_file():
            continue
        try:
            with candidate.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"Cannot read configuration {candidate}: {exc}") from exc
        try:
            config = AppConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration in {candidate}: {exc}") from exc
        return _anchor_paths(config, candidate.parent)
    return DEFAULT_CONFIG.model_copy(deep=True)


def _anchor_paths(config: AppConfig, base_dir: Path) -> AppConfig:
    reference_values = config.attestation.reference_values
    if reference_values is not None and not reference_values.expanduser().is_absolute():
        config.attestation.reference_values = base_dir / reference_values
    for binding in config.attestation.policies:
        candidate = Path(binding.policy).expanduser()
        if candidate.suffix.lower() in {".yaml", ".yml", ".json"} and not candidate.is_absolute():
            binding.policy = str(base_dir / candidate)
    return config


def dump_default_config(target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(DEFAULT_CONFIG.model_dump(mode="json"), handle, sort_keys=False)


__all__ = [
    "CCA_MEDIA_TYPE",
    "LOG_LEVELS",
    "ServerConfig",
    "LoggingConfig",
    "ChallengeConfig",
    "VerifierConfig",
    "PolicyBinding",
    "AttestationConfig",
    "KeyEntry",
    "AppConfig",
    "DEFAULT_CONFIG",
    "config_search_paths",
    "load_config",
    "dump_default_config",
]
