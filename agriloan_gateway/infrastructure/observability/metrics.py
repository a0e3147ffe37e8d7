"""Prometheus metrics for loan throughput, repayments, negotiations and the advice service"""

from prometheus_client import Counter, Histogram

# Loan lifecycle metrics
loan_transition_counter = Counter(
    "agriloan_loan_transitions_total",
    "Loan status transitions applied",
    ["transition"],  # e.g. PENDING_ADMIN_REVIEW->PENDING_BANK_APPROVAL
)

repayment_counter = Counter(
    "agriloan_repayments_total",
    "Repayments recorded",
)

repaid_amount_counter = Counter(
    "agriloan_repaid_naira_total",
    "Total naira repaid across all loans",
)

overdue_sweep_counter = Counter(
    "agriloan_overdue_swept_total",
    "Loans moved to OVERDUE by the sweep",
)

# Marketplace metrics
negotiation_event_counter = Counter(
    "agriloan_negotiation_events_total",
    "Negotiation actions applied",
    ["event"],  # started | offer | accepted | declined | order | cancelled | message
)

# Advice service metrics
advice_failure_counter = Counter(
    "agriloan_advice_failures_total",
    "Failed advice service calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_loan_transition(from_status: str, to_status: str) -> None:
    """Count a transition; unchanged status (officer modification) is counted as X->X"""
    loan_transition_counter.labels(transition=f"{from_status}->{to_status}").inc()


def record_repayment(amount: int) -> None:
    repayment_counter.inc()
    repaid_amount_counter.inc(amount)
