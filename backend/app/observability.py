from contextlib import ContextDecorator
from sqlalchemy import event
from prometheus_client import Counter, Histogram


class QueryCounter(ContextDecorator):
    """Count SQL statements executed on a SQLAlchemy engine within a scope."""

    def __init__(self, engine):
        self.engine = engine
        self.count = 0
        self._enabled = False

    def _before_cursor_execute(self, conn, cursor, statement, parameters, context, executemany):
        self.count += 1

    def __enter__(self):
        if self.engine is not None:
            event.listen(self.engine, 'before_cursor_execute', self._before_cursor_execute)
            self._enabled = True
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._enabled:
            event.remove(self.engine, 'before_cursor_execute', self._before_cursor_execute)
        return False


class TimeTrackingMetrics:
    """Prometheus metrics for clock events, reports and geocoding."""

    def __init__(self):
        self.report_latency = Histogram(
            'reports_line_items_latency_seconds',
            'Latency of loading or generating weekly report line items',
            ['operation'],
        )
        self.export_latency = Histogram(
            'reports_export_generation_latency_seconds',
            'Latency of generating report export files',
            ['output_type'],
        )
        self.clock_events = Counter(
            'clock_events_total',
            'Count of clock events by kind',
            ['kind'],
        )
        self.geocoding_outcomes = Counter(
            'geocoding_lookup_outcomes_total',
            'Count of postcode lookups by answering tier or failure',
            ['outcome'],
        )

    def observe_report_latency(self, duration_s: float, operation: str):
        self.report_latency.labels(operation=operation).observe(duration_s)

    def observe_export_latency(self, duration_s: float, output_type: str):
        self.export_latency.labels(output_type=output_type).observe(duration_s)

    def increment_clock_event(self, kind: str, value: int = 1):
        self.clock_events.labels(kind=kind).inc(value)

    def increment_geocoding_outcome(self, outcome: str):
        self.geocoding_outcomes.labels(outcome=outcome).inc()


time_tracking_metrics = TimeTrackingMetrics()
