# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics: single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Gauge, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "carpool_requests_total",
    "Total HTTP requests to the carpool scheduler",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "carpool_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "carpool_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by service layer only) ──
SCHEDULES_GENERATED = Counter(
    "carpool_schedules_generated_total",
    "Total weekly schedules generated",
    ["regenerated"],
)
SCHEDULE_GENERATION_SECONDS = Histogram(
    "carpool_schedule_generation_seconds",
    "Time spent computing one week's assignments",
)
SLOTS_ASSIGNED = Counter(
    "carpool_slots_assigned_total",
    "Slots assigned, by winning preference tier",
    ["method"],
)
UNFILLED_SLOTS = Counter(
    "carpool_unfilled_slots_total",
    "Slots left without an eligible driver",
    ["reason"],
)
DUPLICATE_RECORDINGS = Counter(
    "carpool_duplicate_recordings_total",
    "Rejected attempts to record an already recorded week",
)
COVERAGE_OUTCOMES = Counter(
    "carpool_coverage_outcomes_total",
    "Vacation coverage arrangement outcomes",
    ["outcome"],
)
HOLIDAY_CANCELLATIONS = Counter(
    "carpool_holiday_cancellations_total",
    "Assignments cancelled because of school holidays",
)
NOTIFICATIONS_SENT = Counter(
    "carpool_notifications_sent_total",
    "Total notifications dispatched",
    ["event_type"],
)
LEDGER_RESETS = Counter(
    "carpool_ledger_resets_total",
    "Fairness tracking period resets",
)
GROUP_EQUITY_SCORE = Gauge(
    "carpool_group_equity_score",
    "Latest computed group equity score (0-100)",
    ["group"],
)
ACTIVE_GROUPS = Gauge(
    "carpool_active_groups",
    "Number of carpool groups known to the scheduler",
)
