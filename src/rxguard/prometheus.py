"""Prometheus metrics for pattern checks and the HTTP service"""

from prometheus_client import Counter, Histogram


cache_lookups_total = Counter(
    'rxguard_cache_lookups_total',
    'Cache lookups by cache name and result',
    ['cache', 'result'],
)

safety_checks_total = Counter(
    'rxguard_safety_checks_total',
    'Pattern safety checks by outcome',
    ['outcome'],
)

replacement_checks_total = Counter(
    'rxguard_replacement_checks_total',
    'Replacement template checks by outcome',
    ['outcome'],
)

address_matches_total = Counter(
    'rxguard_address_matches_total',
    'Address match calls by result',
    ['result'],
)

check_duration_seconds = Histogram(
    'rxguard_check_duration_seconds',
    'Time spent answering a check request',
    ['kind'],
    buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)

http_responses_total = Counter(
    'rxguard_http_responses_total',
    'HTTP responses by method, endpoint and status',
    ['method', 'endpoint', 'status'],
)

errors_total = Counter(
    'rxguard_errors_total',
    'Errors by type',
    ['error_type'],
)


def record_cache_lookup(cache: str, hit: bool) -> None:
    cache_lookups_total.labels(cache=cache, result='hit' if hit else 'miss').inc()


def record_safety_check(outcome: str) -> None:
    safety_checks_total.labels(outcome=outcome).inc()


def record_replacement_check(outcome: str) -> None:
    replacement_checks_total.labels(outcome=outcome).inc()


def record_address_match(matched: bool) -> None:
    address_matches_total.labels(result='match' if matched else 'no_match').inc()


def record_check_duration(kind: str, duration: float) -> None:
    check_duration_seconds.labels(kind=kind).observe(duration)


def record_http_response(method: str, endpoint: str, status: int) -> None:
    http_responses_total.labels(method=method, endpoint=endpoint, status=str(status)).inc()


def record_error(error_type: str) -> None:
    errors_total.labels(error_type=error_type).inc()
