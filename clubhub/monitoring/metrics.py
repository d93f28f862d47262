"""
Prometheus Validation Metrics

Counters and a histogram describing validation traffic, registered on the
prometheus-client default registry so a host application's ``/metrics``
endpoint exports them without further wiring.

Metrics:
    clubhub_validations_total{entity,mode,outcome}
    clubhub_validation_errors_total{entity,mode,error_type}
    clubhub_validation_duration_seconds{entity,mode}
"""

from typing import Iterable, Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

from ..business.exceptions import FieldValidationError


class ValidationMetrics:
    """
    Validation throughput, failure and latency metrics.

    Args:
        registry: Registry the collectors are registered on
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        registry = registry if registry is not None else REGISTRY

        self.validations_total = Counter(
            'clubhub_validations_total',
            'Total validation calls by entity, mutation mode and outcome',
            ['entity', 'mode', 'outcome'],  # success, failure
            registry=registry
        )

        self.validation_errors_total = Counter(
            'clubhub_validation_errors_total',
            'Total field-level validation errors reported',
            ['entity', 'mode', 'error_type'],
            registry=registry
        )

        self.validation_duration_seconds = Histogram(
            'clubhub_validation_duration_seconds',
            'Validation call duration in seconds',
            ['entity', 'mode'],
            buckets=[0.0001, 0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, float('inf')],
            registry=registry
        )

    def record_validation(
        self,
        entity: str,
        mode: str,
        duration: float,
        errors: Iterable[FieldValidationError] = (),
    ) -> None:
        """
        Record one validation call.

        Args:
            entity: Entity name
            mode: ``create`` or ``update``
            duration: Elapsed seconds
            errors: Reported errors; empty on success
        """
        errors = list(errors)
        self.validations_total.labels(
            entity=entity,
            mode=mode,
            outcome='failure' if errors else 'success'
        ).inc()

        for error in errors:
            self.validation_errors_total.labels(
                entity=entity,
                mode=mode,
                error_type=error.error_code
            ).inc()

        self.validation_duration_seconds.labels(entity=entity, mode=mode).observe(duration)


validation_metrics = ValidationMetrics()
