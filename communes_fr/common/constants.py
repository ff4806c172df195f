"""Application constants."""

USER_AGENT = "communes-fr/1.0 (+open-data snapshot; contact: configured-email)"
EXIT_SUCCESS = 0
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "event",
    "status",
    "processed",
    "failed",
    "total",
    "duration_ms",
    "error_code",
    "message",
)
