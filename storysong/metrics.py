from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

# Keep metrics module-level singletons
jobs_enqueued_total = Counter("jobs_enqueued_total", "Jobs pushed onto the pending list", ["type"])
jobs_completed_total = Counter("jobs_completed_total", "Jobs whose handler succeeded", ["type"])
jobs_retried_total = Counter("jobs_retried_total", "Failed attempts sent back to the pending list", ["type"])
jobs_failed_total = Counter("jobs_failed_total", "Jobs that exhausted their retries", ["type"])
rate_limited_total = Counter("rate_limited_total", "Dequeue attempts denied by the rate limiter")
error_count = Counter("error_count", "Total errors encountered by the control plane")
pending_jobs = Gauge("pending_jobs", "Pending list length seen at the start of the last drain")
drain_duration_seconds = Histogram("drain_duration_seconds", "Wall-clock duration of one drain tick")
request_latency_seconds = Histogram("request_latency_seconds", "HTTP request latency seconds")


def metrics_response():
    # Return prometheus metrics as a Response
    payload = generate_latest()
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
