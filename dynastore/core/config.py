"""
Configuration Management for dynastore

Provides validated configuration with sensible defaults.
Supports environment variable overrides.

Design:
- Immutable after validation
- Fail-fast on invalid configuration
- Type-safe with dataclasses
- Credentials are optional: when absent the default AWS provider chain
  (environment, shared config, instance role) is used by botocore
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from botocore.config import Config

from dynastore.core import constants as C
from dynastore.core.errors import ConfigurationError
from dynastore.core.types import Err, Ok, Result

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


# =============================================================================
# DYNAMODB CLIENT CONFIGURATION
# =============================================================================
@dataclass(frozen=True, slots=True)
class DynamoConfig:
    """
    DynamoDB client configuration.

    Thread Safety:
    -------------
    Frozen dataclass - immutable after construction.

    Attributes:
        region: AWS region.
        endpoint_url: Custom endpoint (DynamoDB Local, LocalStack), None for AWS.
        access_key_id: AWS access key (None for provider chain auth).
        secret_access_key: AWS secret key (None for provider chain auth).
        session_token: Temporary session token for STS.
        connect_timeout_seconds: TCP connect timeout.
        read_timeout_seconds: Read operation timeout.
        max_retries: Attempts for botocore's own retry layer.
        max_pool_connections: HTTP connection pool size.
        verify_ssl: Verify SSL certificates (disable for self-signed).
    """

    region: str = C.DEFAULT_REGION
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None

    connect_timeout_seconds: int = C.DEFAULT_CONNECT_TIMEOUT_SECONDS
    read_timeout_seconds: int = C.DEFAULT_READ_TIMEOUT_SECONDS
    max_retries: int = C.DEFAULT_MAX_RETRIES
    max_pool_connections: int = C.DEFAULT_MAX_POOL_CONNECTIONS

    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """
        Validate configuration invariants.

        Raises:
            ValueError: If any invariant is violated.
        """
        if not self.region:
            raise ValueError("region must be non-empty")
        if self.connect_timeout_seconds <= 0:
            raise ValueError(
                f"connect_timeout_seconds must be > 0, got {self.connect_timeout_seconds}"
            )
        if self.read_timeout_seconds <= 0:
            raise ValueError(
                f"read_timeout_seconds must be > 0, got {self.read_timeout_seconds}"
            )
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.max_pool_connections <= 0:
            raise ValueError(
                f"max_pool_connections must be > 0, got {self.max_pool_connections}"
            )
        if bool(self.access_key_id) != bool(self.secret_access_key):
            raise ValueError(
                "access_key_id and secret_access_key must be supplied together"
            )

    @classmethod
    def from_env(cls, prefix: str = "DYNAMO") -> DynamoConfig:
        """
        Construct configuration from environment variables.

        Environment Variables:
        - {prefix}_REGION: AWS region (falls back to AWS_REGION, then us-east-1)
        - {prefix}_ENDPOINT_URL: Custom endpoint URL
        - {prefix}_ACCESS_KEY_ID: AWS access key ID
        - {prefix}_SECRET_ACCESS_KEY: AWS secret access key
        - AWS_SESSION_TOKEN: STS session token
        - {prefix}_CONNECT_TIMEOUT / {prefix}_READ_TIMEOUT: seconds
        - {prefix}_MAX_RETRIES: botocore retry attempts (default: 3)
        - {prefix}_MAX_POOL_CONNECTIONS: pool size (default: 10)
        - {prefix}_VERIFY_SSL: Verify certs (default: true)

        Raises:
            ValueError: On unparsable numbers or invalid values.
        """
        def _get(key: str, default: str = "") -> str:
            return os.environ.get(f"{prefix}_{key}", default)

        def _get_int(key: str, default: int) -> int:
            val = _get(key)
            return int(val) if val else default

        def _get_bool(key: str, default: bool) -> bool:
            val = _get(key).lower()
            if val in ("true", "1", "yes"):
                return True
            if val in ("false", "0", "no"):
                return False
            return default

        return cls(
            region=_get("REGION") or os.environ.get("AWS_REGION", C.DEFAULT_REGION),
            endpoint_url=_get("ENDPOINT_URL") or None,
            access_key_id=_get("ACCESS_KEY_ID") or os.environ.get("AWS_ACCESS_KEY_ID"),
            secret_access_key=(
                _get("SECRET_ACCESS_KEY") or os.environ.get("AWS_SECRET_ACCESS_KEY")
            ),
            session_token=os.environ.get("AWS_SESSION_TOKEN"),
            connect_timeout_seconds=_get_int(
                "CONNECT_TIMEOUT", C.DEFAULT_CONNECT_TIMEOUT_SECONDS
            ),
            read_timeout_seconds=_get_int("READ_TIMEOUT", C.DEFAULT_READ_TIMEOUT_SECONDS),
            max_retries=_get_int("MAX_RETRIES", C.DEFAULT_MAX_RETRIES),
            max_pool_connections=_get_int(
                "MAX_POOL_CONNECTIONS", C.DEFAULT_MAX_POOL_CONNECTIONS
            ),
            verify_ssl=_get_bool("VERIFY_SSL", True),
        )

    def get_session_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for aioboto3.Session(...)."""
        kwargs: Dict[str, Any] = {}
        if self.access_key_id and self.secret_access_key:
            kwargs["aws_access_key_id"] = self.access_key_id
            kwargs["aws_secret_access_key"] = self.secret_access_key
        if self.session_token:
            kwargs["aws_session_token"] = self.session_token
        return kwargs

    def get_client_kwargs(self) -> Dict[str, Any]:
        """
        Keyword arguments for session.client("dynamodb", ...).

        Returns:
            Dict with region, botocore Config and optional endpoint/verify.
        """
        kwargs: Dict[str, Any] = {
            "region_name": self.region,
            "config": Config(
                max_pool_connections=self.max_pool_connections,
                connect_timeout=self.connect_timeout_seconds,
                read_timeout=self.read_timeout_seconds,
                retries={"max_attempts": self.max_retries},
            ),
        }
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        if not self.verify_ssl:
            kwargs["verify"] = False
        return kwargs


# =============================================================================
# OBSERVABILITY CONFIGURATION
# =============================================================================
@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging and tracing configuration."""

    log_level: str = "INFO"
    log_json: bool = True
    tracing_enabled: bool = True
    service_name: str = "dynastore"

    @property
    def level(self) -> int:
        return logging.getLevelName(self.log_level.upper())


# =============================================================================
# ROOT CONFIGURATION
# =============================================================================
@dataclass(frozen=True)
class DynastoreConfig:
    """Root configuration for dynastore."""

    dynamo: DynamoConfig = field(default_factory=DynamoConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> Result[DynastoreConfig, ConfigurationError]:
        """
        Load configuration from environment variables.

        Client settings use the DYNAMO_ prefix (see DynamoConfig.from_env),
        observability settings use DYNASTORE_.
        Example: DYNAMO_ENDPOINT_URL, DYNASTORE_LOG_LEVEL
        """
        try:
            dynamo = DynamoConfig.from_env()
            observability = ObservabilityConfig(
                log_level=os.getenv("DYNASTORE_LOG_LEVEL", "INFO"),
                log_json=os.getenv("DYNASTORE_LOG_JSON", "true").lower()
                in ("true", "1", "yes"),
                tracing_enabled=os.getenv("DYNASTORE_TRACING_ENABLED", "true").lower()
                in ("true", "1", "yes"),
                service_name=os.getenv("DYNASTORE_SERVICE_NAME", "dynastore"),
            )
            return Ok(cls(dynamo=dynamo, observability=observability))
        except (ValueError, TypeError) as e:
            return Err(ConfigurationError.invalid(str(e), cause=e))

    def validate(self) -> Result[None, ConfigurationError]:
        """Validate cross-field configuration invariants."""
        if self.observability.log_level.upper() not in _LOG_LEVELS:
            return Err(ConfigurationError.invalid(
                f"unknown log level '{self.observability.log_level}'"
            ))
        if self.dynamo.read_timeout_seconds < self.dynamo.connect_timeout_seconds:
            return Err(ConfigurationError.invalid(
                "read_timeout_seconds cannot be shorter than connect_timeout_seconds"
            ))
        return Ok(None)
