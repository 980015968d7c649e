"""Prometheus metrics definitions"""

from prometheus_client import Counter, Histogram


# Detection pipeline
detection_run_time = Histogram(
    'detection_run_time_seconds',
    'Time to complete one detection invocation',
    labelnames=['mode'],  # batch, business
    buckets=[1, 5, 15, 30, 60, 120, 300]
)

businesses_scanned = Counter(
    'businesses_scanned_total',
    'Businesses processed by the detection orchestrator',
    labelnames=['outcome']  # scanned, skipped, failed
)

transactions_scored = Counter(
    'transactions_scored_total',
    'Transactions scored by the outlier scorer'
)

anomalies_flagged = Counter(
    'anomalies_flagged_total',
    'Transactions scored above the anomaly threshold'
)

alerts_created = Counter(
    'alerts_created_total',
    'Alerts persisted by the lifecycle manager',
    labelnames=['severity']
)

alerts_suppressed = Counter(
    'alerts_suppressed_total',
    'Alert drafts dropped by the dedup window'
)

enrichment_failures = Counter(
    'enrichment_failures_total',
    'Enrichment calls that degraded to an empty result',
    labelnames=['reason']  # provider, parse
)

# LLM cost & usage tracking
llm_tokens_counter = Counter(
    'llm_tokens_used_total',
    'Total LLM tokens consumed',
    labelnames=['model_name', 'caller']
)

llm_cost_counter = Counter(
    'llm_cost_dollars_total',
    'Total LLM cost in USD',
    labelnames=['model_name']
)

llm_api_latency = Histogram(
    'llm_api_latency_seconds',
    'Latency of LLM API calls',
    labelnames=['model_name'],
    buckets=[0.5, 1, 2, 5, 10, 30]
)

llm_rate_limit_hits = Counter(
    'llm_rate_limit_hits_total',
    'Number of LLM rate limit errors',
    labelnames=['model_name']
)

# Semantic memory
embedding_calls = Counter(
    'embedding_calls_total',
    'Embedding provider calls',
    labelnames=['status']  # success, failure
)

embedding_latency = Histogram(
    'embedding_latency_seconds',
    'Latency of embedding provider calls',
    buckets=[0.05, 0.1, 0.5, 1, 2, 5]
)

vector_operations = Counter(
    'vector_operations_total',
    'Vector index operations',
    labelnames=['collection', 'operation', 'status']
)

collections_provisioned = Counter(
    'vector_collections_provisioned_total',
    'Collections created on first use',
    labelnames=['collection']
)
