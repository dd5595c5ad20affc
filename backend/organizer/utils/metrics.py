"""Prometheus metrics for the document pipeline."""

from prometheus_client import Counter

documents_added_total = Counter(
    "documents_added_total",
    "Total documents ingested through uploads",
    ["type"],
)

documents_rejected_total = Counter(
    "documents_rejected_total",
    "Total uploads rejected before any side effect",
    ["reason"],
)

scan_documents_inserted_total = Counter(
    "scan_documents_inserted_total",
    "Total documents inserted by storage reconciliation",
)

scan_runs_total = Counter(
    "scan_runs_total",
    "Total storage reconciliation runs",
    ["outcome"],
)

cover_notifications_total = Counter(
    "cover_notifications_total",
    "Total cover generation notifications",
    ["outcome"],
)
