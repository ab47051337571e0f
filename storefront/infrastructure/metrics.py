from prometheus_client import Counter, Histogram, generate_latest
from fastapi import Response

# HTTP
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

# Key-value storage
storage_reads_total = Counter('storage_reads_total', 'Total document reads', ['backend'])
storage_writes_total = Counter('storage_writes_total', 'Total atomic document writes', ['backend'])

# Purchases and checkout
purchases_total = Counter('purchases_total', 'Purchase attempts by outcome', ['outcome'])
checkout_attempts_total = Counter('checkout_attempts_total', 'Checkout submissions by outcome', ['outcome'])


def metrics_endpoint():
    """Endpoint for Prometheus metrics"""
    return Response(content=generate_latest(), media_type="text/plain")
