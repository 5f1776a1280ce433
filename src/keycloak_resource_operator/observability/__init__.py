"""
Observability utilities for the Keycloak resource operator.

This module provides metrics and structured logging capabilities for
production monitoring and troubleshooting.
"""

from .logging import OperatorLogger, setup_structured_logging
from .metrics import get_metrics_registry, metrics_collector, start_metrics_server

__all__ = [
    "OperatorLogger",
    "setup_structured_logging",
    "get_metrics_registry",
    "metrics_collector",
    "start_metrics_server",
]
