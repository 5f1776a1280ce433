"""Centralized operator settings using pydantic-settings.

This module provides a single source of truth for all operator configuration
loaded from environment variables. Uses pydantic for automatic validation,
type coercion, and documentation.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from keycloak_resource_operator.constants import (
    DEFAULT_CONFLICT_RETRY_DELAY,
    DEFAULT_FAILURE_BACKOFF_BASE,
    DEFAULT_FAILURE_BACKOFF_MAX,
    DEFAULT_FAILURE_BACKOFF_MULTIPLIER,
    DEFAULT_SUCCESS_RECONCILE_TIMEOUT,
)


class Settings(BaseSettings):
    """Operator configuration loaded from environment variables.

    All settings have sensible defaults for production use. Override via
    environment variables as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    operator_name: str = Field(
        default="keycloak-resource-operator",
        description="Name of the operator deployment, used as kopf peering name",
        validation_alias="OPERATOR_NAME",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )

    # Namespace watching
    namespaces: str = Field(
        default="",
        validation_alias="KEYCLOAK_OPERATOR_NAMESPACES",
        description="Comma-separated list of namespaces to watch (empty = all namespaces)",
    )

    # Reconciliation cadence
    success_reconcile_timeout_seconds: float = Field(
        default=DEFAULT_SUCCESS_RECONCILE_TIMEOUT,
        validation_alias="SUCCESS_RECONCILE_TIMEOUT_SECONDS",
        description="Interval in seconds between re-reconciliations of healthy resources",
    )
    failure_backoff_base_seconds: float = Field(
        default=DEFAULT_FAILURE_BACKOFF_BASE,
        gt=0,
        validation_alias="FAILURE_BACKOFF_BASE_SECONDS",
        description="Requeue delay after the first consecutive failure",
    )
    failure_backoff_multiplier: float = Field(
        default=DEFAULT_FAILURE_BACKOFF_MULTIPLIER,
        ge=1.0,
        validation_alias="FAILURE_BACKOFF_MULTIPLIER",
        description="Growth factor of the requeue delay per consecutive failure",
    )
    failure_backoff_max_seconds: float = Field(
        default=DEFAULT_FAILURE_BACKOFF_MAX,
        gt=0,
        validation_alias="FAILURE_BACKOFF_MAX_SECONDS",
        description="Upper bound of the requeue delay after failures",
    )
    conflict_retry_delay_seconds: float = Field(
        default=DEFAULT_CONFLICT_RETRY_DELAY,
        gt=0,
        validation_alias="CONFLICT_RETRY_DELAY_SECONDS",
        description="Requeue delay after an optimistic write conflict",
    )

    # Keycloak Admin API client
    keycloak_http_timeout_seconds: float = Field(
        default=60.0,
        validation_alias="KEYCLOAK_HTTP_TIMEOUT_SECONDS",
        description="Timeout in seconds for Keycloak Admin API requests",
    )
    keycloak_verify_ssl: bool = Field(
        default=True,
        validation_alias="KEYCLOAK_VERIFY_SSL",
        description="Verify TLS certificates of Keycloak endpoints",
    )

    # Metrics endpoint
    metrics_port: int = Field(
        default=8081,
        ge=0,
        validation_alias="METRICS_PORT",
        description="Port of the Prometheus metrics endpoint (0 disables it)",
    )
    metrics_host: str = Field(
        default="0.0.0.0",
        validation_alias="METRICS_HOST",
        description="Bind address of the Prometheus metrics endpoint",
    )

    @property
    def watched_namespaces(self) -> list[str] | None:
        """Parse watched namespaces from comma-separated string.

        Returns:
            List of namespace names, or None to watch all namespaces
        """
        if self.namespaces:
            return [ns.strip() for ns in self.namespaces.split(",") if ns.strip()]
        return None


# Global settings instance - initialized once at module import
settings = Settings()
