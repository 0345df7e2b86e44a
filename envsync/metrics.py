from __future__ import annotations

from prometheus_client import Counter, Histogram

SYNC_OPERATIONS_TOTAL = Counter(
    "envsync_sync_operations_total",
    "Количество операций синхронизации с GitHub",
    labelnames=("operation", "result"),
)

GITHUB_REQUEST_LATENCY = Histogram(
    "envsync_github_request_seconds",
    "Продолжительность запросов к GitHub API",
    labelnames=("method",),
    buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)

REMOTE_ENVIRONMENTS_FETCHED = Counter(
    "envsync_remote_environments_fetched_total",
    "Количество окружений, прочитанных из GitHub",
    labelnames=("result",),
)
