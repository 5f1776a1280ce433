#!/usr/bin/env python3
"""
Keycloak Resource Operator - Main entry point for the Kopf-based operator.

The operator reconciles realm child resources (groups, client scopes,
authentication flows and components) against Keycloak.

Usage:
    python -m keycloak_resource_operator.operator
    # Or with kopf directly:
    kopf run -m keycloak_resource_operator.operator --all-namespaces

Environment Variables:
    KEYCLOAK_OPERATOR_NAMESPACES: Comma-separated list of namespaces to watch
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
    METRICS_PORT: Port of the Prometheus endpoint, 0 to disable it
"""

import logging
import random
import sys

import kopf

# Importing the handler modules registers their kopf handlers
from keycloak_resource_operator.handlers import child  # noqa: F401
from keycloak_resource_operator.observability.logging import setup_structured_logging
from keycloak_resource_operator.observability.metrics import start_metrics_server
from keycloak_resource_operator.settings import settings as operator_settings
from keycloak_resource_operator.utils.kubernetes import get_kubernetes_client


def configure_logging() -> None:
    """Configure structured logging for the operator based on operator_settings."""
    setup_structured_logging(
        log_level=operator_settings.log_level.upper(),
        enable_json_formatting=operator_settings.json_logs,
        correlation_id_enabled=operator_settings.correlation_ids,
    )


@kopf.on.startup()
async def startup_handler(settings: kopf.OperatorSettings, **_) -> None:
    """
    Operator startup configuration.

    Configures peering, worker limits and the metrics endpoint, and loads the
    Kubernetes client configuration used by the resource store.
    """
    logging.info("Starting Keycloak Resource Operator...")
    settings.watching.reconnect_backoff = 1.0

    # Each pod gets a unique priority to enable leader election
    settings.peering.name = operator_settings.operator_name
    settings.peering.priority = random.randint(0, 32767)
    logging.info(
        f"Peering priority set to {settings.peering.priority} for leader election"
    )

    settings.execution.max_workers = 20

    watched_namespaces = operator_settings.watched_namespaces
    if watched_namespaces:
        logging.info(f"Watching namespaces: {', '.join(watched_namespaces)}")
    else:
        logging.info("Watching all namespaces (cluster-wide mode)")

    get_kubernetes_client()

    if operator_settings.metrics_port:
        try:
            start_metrics_server(
                operator_settings.metrics_port, operator_settings.metrics_host
            )
        except OSError as e:
            logging.error(f"Failed to start metrics server: {e}")
            logging.warning("Continuing without metrics server")


@kopf.on.cleanup()
async def cleanup_handler(**_) -> None:
    logging.info("Shutting down Keycloak Resource Operator...")


def main() -> None:
    """
    Main entry point for the operator.

    Configures logging, determines the namespace scope and runs kopf.
    """
    configure_logging()

    watched_namespaces = operator_settings.watched_namespaces

    try:
        if watched_namespaces:
            kopf.run(
                namespaces=watched_namespaces,
                liveness_endpoint="http://0.0.0.0:8080/healthz",
            )
        else:
            kopf.run(
                clusterwide=True,
                liveness_endpoint="http://0.0.0.0:8080/healthz",
            )
    except KeyboardInterrupt:
        logging.info("Received shutdown signal")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Operator failed with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
