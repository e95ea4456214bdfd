"""Configuration loading and Pydantic models for the SigV4 signer."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from s3sigv4.signing import DEFAULT_REGION


class SignerConfig(BaseModel):
    """Signing scope defaults."""

    region: str = DEFAULT_REGION
    presign_expires: int = 3600


class CredentialsConfig(BaseModel):
    """The caller's access key pair."""

    access_key: str = ""
    secret_key: str = Field(default="", repr=False)


class LoggingConfig(BaseModel):
    """Log level and output format."""

    level: str = "INFO"
    format: str = "text"


class MetricsConfig(BaseModel):
    """Prometheus metrics configuration."""

    enabled: bool = False


class S3SigV4Config(BaseModel):
    """Top-level configuration."""

    signer: SignerConfig = Field(default_factory=SignerConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)


def _parse_signer(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the signer section from YAML data into a dict for Pydantic."""
    if data is None:
        return {}
    return {
        "region": data.get("region", DEFAULT_REGION),
        "presign_expires": data.get("presign_expires", 3600),
    }


def _parse_credentials(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the credentials section from YAML data."""
    if data is None:
        return {}
    return {
        "access_key": data.get("access_key", ""),
        "secret_key": data.get("secret_key", ""),
    }


def _parse_logging(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the logging section from YAML data."""
    if data is None:
        return {}
    return {
        "level": data.get("level", "INFO"),
        "format": data.get("format", "text"),
    }


def load_config(path: Path) -> S3SigV4Config:
    """Load an S3SigV4Config from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated S3SigV4Config validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    metrics = raw.get("metrics") or {}
    return S3SigV4Config(
        signer=SignerConfig(**_parse_signer(raw.get("signer"))),
        credentials=CredentialsConfig(**_parse_credentials(raw.get("credentials"))),
        logging=LoggingConfig(**_parse_logging(raw.get("logging"))),
        metrics=MetricsConfig(enabled=metrics.get("enabled", False)),
    )
