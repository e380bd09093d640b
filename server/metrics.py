"""
Prometheus Metrics Module

Provides instrumentation for all core operations:
- Tally writes (votes) and reaction toggles
- Content created per module
- Live subscriptions
- API requests
- Error tracking

Usage:
    from server.metrics import metrics
    metrics.tally_writes.labels(module="polls", outcome="changed").inc()
    with metrics.store_operation_duration.labels(operation="increment").time():
        await store.increment(path, deltas)
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, REGISTRY


class HubMetrics:
    """Centralized metrics for the hub API and tally maintenance"""

    def __init__(self):
        # Tally metrics
        self.tally_writes = Counter(
            'topicless_tally_writes_total',
            'Flat tally choices applied',
            ['module', 'outcome']  # outcome: new/switched/unchanged/gone/failed
        )

        self.reaction_toggles = Counter(
            'topicless_reaction_toggles_total',
            'Reaction toggles by module and resulting state',
            ['module', 'state']  # state: added/removed
        )

        self.store_operation_duration = Histogram(
            'topicless_store_operation_duration_seconds',
            'Document store operation duration',
            ['operation'],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
        )

        # Content metrics
        self.content_created = Counter(
            'topicless_content_created_total',
            'Documents created by kind',
            ['kind']  # question/answer/poll/idea/wyr/comment/post
        )

        self.content_deleted = Counter(
            'topicless_content_deleted_total',
            'Documents deleted by kind',
            ['kind']
        )

        # Live update metrics
        self.live_subscriptions = Gauge(
            'topicless_live_subscriptions',
            'Open server-sent event streams',
            ['collection']
        )

        # API metrics
        self.api_requests = Counter(
            'topicless_api_requests_total',
            'Total API requests',
            ['endpoint', 'method', 'status_code']
        )

        self.api_request_duration = Histogram(
            'topicless_api_request_duration_seconds',
            'API request duration',
            ['endpoint', 'method'],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
        )

        # Auth metrics
        self.auth_events = Counter(
            'topicless_auth_events_total',
            'Registrations and sign-ins',
            ['event', 'status']  # event: register/login
        )

        # Error metrics
        self.errors = Counter(
            'topicless_errors_total',
            'Total errors by component and type',
            ['component', 'error_type']
        )

    def record_error(self, component: str, error: Exception):
        """Record an error

        Args:
            component: Component name (tally/store/api/auth)
            error: Exception instance
        """
        error_type = type(error).__name__
        self.errors.labels(component=component, error_type=error_type).inc()


# Global metrics instance
metrics = HubMetrics()


def get_metrics_text() -> str:
    """Get Prometheus metrics in text format

    Returns:
        Metrics text suitable for /metrics endpoint
    """
    return generate_latest(REGISTRY).decode('utf-8')
