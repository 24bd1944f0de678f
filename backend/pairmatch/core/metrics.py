"""
Prometheus metrics configuration
"""
import os

from prometheus_client import (CONTENT_TYPE_LATEST, Counter, Histogram,
                               generate_latest)
from prometheus_client.multiprocess import MultiProcessCollector
from prometheus_client.registry import REGISTRY

# Check if we're in multiprocess mode
if os.environ.get('PROMETHEUS_MULTIPROC_DIR'):
    REGISTRY = MultiProcessCollector(REGISTRY)

# ============================================================================
# HTTP Request Metrics
# ============================================================================

http_requests_total = Counter(
    'pairmatch_http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code']
)

http_request_duration_seconds = Histogram(
    'pairmatch_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)
)

# ============================================================================
# Matching Metrics
# ============================================================================

match_requests_total = Counter(
    'pairmatch_match_requests_total',
    'Match requests by outcome',
    ['role', 'outcome']  # outcome: 'matched', 'waiting', 'rejected'
)

claim_conflicts_total = Counter(
    'pairmatch_claim_conflicts_total',
    'Claims lost to a concurrent matcher or cancel'
)

queue_cancellations_total = Counter(
    'pairmatch_queue_cancellations_total',
    'Participants who left the waiting queue'
)

matches_completed_total = Counter(
    'pairmatch_matches_completed_total',
    'Matches moved to COMPLETED',
    ['with_repo']
)

# ============================================================================
# Generation Metrics
# ============================================================================

generation_requests_total = Counter(
    'pairmatch_generation_requests_total',
    'Generation service calls by kind and outcome',
    ['kind', 'outcome']  # outcome: 'success', 'fallback'
)

generation_attempts_total = Counter(
    'pairmatch_generation_attempts_total',
    'Individual HTTP attempts against the generation service',
    ['status']
)

generation_duration_seconds = Histogram(
    'pairmatch_generation_duration_seconds',
    'Generation duration including retries, in seconds',
    ['kind'],
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0)
)


def get_metrics() -> bytes:
    """Render all metrics in Prometheus text format"""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Content type of the Prometheus exposition format"""
    return CONTENT_TYPE_LATEST
