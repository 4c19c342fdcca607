"""Prometheus metrics export."""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Chat endpoint outcomes; kind is "ok" or an ErrorKind value
chat_requests_total = Counter(
    "chat_requests_total",
    "Total chat requests by outcome",
    ["outcome"],
)

chat_request_duration = Histogram(
    "chat_request_duration_seconds",
    "Chat request duration in seconds",
)

# LLM metrics
llm_calls_total = Counter(
    "llm_calls_total",
    "Total LLM API calls",
    ["provider", "model", "status"],
)

llm_call_duration = Histogram(
    "llm_call_duration_seconds",
    "LLM API call duration in seconds",
    ["provider", "model"],
)

# Owner credential validation
credential_validations_total = Counter(
    "credential_validations_total",
    "Total owner credential validations",
    ["result"],
)


def get_metrics_response() -> Response:
    """Get Prometheus metrics as HTTP response."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
