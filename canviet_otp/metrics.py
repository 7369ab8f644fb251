"""
Prometheus Metrics
==================
Counters and timings for OTP issuance, verification and delivery.
"""

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

OTP_REGISTRY = CollectorRegistry()

OTP_ISSUE_TOTAL = Counter(
    name="otp_issue_total",
    documentation="OTP issuance attempts by outcome",
    labelnames=["channel", "outcome"],
    registry=OTP_REGISTRY,
)

OTP_VERIFY_TOTAL = Counter(
    name="otp_verify_total",
    documentation="OTP verification attempts by outcome",
    labelnames=["channel", "outcome"],
    registry=OTP_REGISTRY,
)

OTP_DELIVERY_SECONDS = Histogram(
    name="otp_delivery_seconds",
    documentation="Time spent delivering codes to the provider",
    labelnames=["channel"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    registry=OTP_REGISTRY,
)


def record_issue(channel: str, outcome: str) -> None:
    OTP_ISSUE_TOTAL.labels(channel=channel, outcome=outcome).inc()


def record_verify(channel: str, outcome: str) -> None:
    OTP_VERIFY_TOTAL.labels(channel=channel, outcome=outcome).inc()


def record_delivery(channel: str, duration_seconds: float) -> None:
    OTP_DELIVERY_SECONDS.labels(channel=channel).observe(duration_seconds)


def export_metrics() -> bytes:
    """Render the OTP registry in Prometheus text format."""
    return generate_latest(OTP_REGISTRY)
