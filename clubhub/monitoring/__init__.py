"""
Monitoring package: structlog configuration and Prometheus validation metrics.
"""

from .logging import LoggingConfig, get_logger, setup_structured_logging
from .metrics import ValidationMetrics, validation_metrics

__all__ = [
    'LoggingConfig',
    'ValidationMetrics',
    'get_logger',
    'setup_structured_logging',
    'validation_metrics',
]
