"""Prometheus metrics for ledger writes, credits and redistribution payouts"""

from prometheus_client import Counter, Histogram

# Ledger metrics
transactions_counter = Counter(
    "coop_ledger_transactions_total",
    "Financial transactions written to the ledger",
    ["kind", "status"],
)

credits_created_counter = Counter(
    "coop_ledger_credits_created_total",
    "Member credits created",
)

# Payout metrics
payout_counter = Counter(
    "coop_ledger_payouts_total",
    "Member payout attempts by outcome",
    ["outcome"],  # success | failure | error
)

payout_latency_histogram = Histogram(
    "coop_ledger_payout_latency_seconds",
    "Payout provider response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

redistribution_counter = Counter(
    "coop_ledger_redistributions_total",
    "Process runs by resulting payment status",
    ["status"],  # redistributed | failed | received
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_transaction(kind: str, status: str) -> None:
    transactions_counter.labels(kind=kind, status=status).inc()


def record_payout(outcome: str) -> None:
    payout_counter.labels(outcome=outcome).inc()


def record_redistribution(status: str) -> None:
    redistribution_counter.labels(status=status).inc()
