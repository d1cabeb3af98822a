# khe_api/metrics.py
from prometheus_client import Counter, Histogram, CollectorRegistry

# Dedicated registry so reloads and repeated imports don't collide
REGISTRY = CollectorRegistry(auto_describe=True)

POINT_GRANTS = Counter(
    "point_grants_total",
    "Number of point grant attempts",
    ["outcome"],
    registry=REGISTRY,
)

LEADERBOARD_LATENCY = Histogram(
    "leaderboard_latency_seconds",
    "Latency of leaderboard aggregation in seconds",
    registry=REGISTRY,
)

PUSH_REQUESTS = Counter(
    "push_requests_total",
    "Number of push notification requests",
    ["outcome"],
    registry=REGISTRY,
)

PUSH_LATENCY = Histogram(
    "push_latency_seconds",
    "Latency of push notification requests in seconds",
    registry=REGISTRY,
)

MAIL_REQUESTS = Counter(
    "mail_requests_total",
    "Number of outbound email requests",
    ["outcome"],
    registry=REGISTRY,
)
