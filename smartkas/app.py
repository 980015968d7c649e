"""Process-start wiring: every component is built once here and passed to its users"""

import importlib
import os
from dataclasses import dataclass
from typing import Any, Dict
from smartkas.constants import (
    DEFAULT_ANOMALY_THRESHOLD,
    DEFAULT_BUSINESS_BATCH_SIZE,
    DEFAULT_DEDUP_WINDOW_HOURS,
    DEFAULT_EMBEDDING_DIM,
    DEFAULT_MAX_SAMPLES,
    DEFAULT_MIN_TRANSACTIONS,
    DEFAULT_N_TREES,
    DEFAULT_RECHECK_INTERVAL_HOURS,
    DEFAULT_SEED,
    DEFAULT_TRANSACTION_LIMIT
)
from smartkas.memory.collections import (
    CHAT_COLLECTION,
    TRANSACTION_COLLECTION,
    chat_collection,
    transaction_collection
)
from smartkas.memory.retrieval import SemanticRetrievalService
from smartkas.memory.vector_backend import InMemoryVectorBackend, MilvusVectorBackend
from smartkas.memory.vector_memory import VectorMemoryIndex
from smartkas.orchestrator.alert_lifecycle import AlertLifecycleManager
from smartkas.orchestrator.detection_orchestrator import DetectionOrchestrator
from smartkas.orchestrator.transaction_hooks import TransactionHooks
from smartkas.tools.anomaly_enricher import AnomalyEnricher
from smartkas.tools.assistant_tools import AssistantToolkit
from smartkas.tools.embedding_client import EmbeddingClient
from smartkas.tools.llm_client import LLMClient
from smartkas.tools.outlier_scorer import IsolationForestScorer
from smartkas.utils.config_loader import get_section
from smartkas.utils.errors import ConfigurationError
from smartkas.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Services:
    store: Any
    scorer: IsolationForestScorer
    enricher: AnomalyEnricher
    lifecycle: AlertLifecycleManager
    orchestrator: DetectionOrchestrator
    retrieval: SemanticRetrievalService
    hooks: TransactionHooks
    toolkit: AssistantToolkit


def build_record_store(config: Dict[str, Any]):
    """
    Instantiate the record store named by `record_store.factory`.

    The factory is a `module:attribute` path (attributes may be dotted) called
    with `record_store.options` as keyword arguments.
    """
    section = get_section(config, 'record_store')
    factory_path = section.get('factory')
    if not factory_path:
        raise ConfigurationError("record_store.factory is not configured")

    module_name, _, attribute_path = factory_path.partition(':')
    try:
        factory = importlib.import_module(module_name)
        for attribute in attribute_path.split('.'):
            factory = getattr(factory, attribute)
    except (ImportError, AttributeError, ValueError) as e:
        raise ConfigurationError(f"Cannot resolve record store factory {factory_path}: {e}") from e

    store = factory(**(section.get('options') or {}))
    logger.info("Record store ready", factory=factory_path)
    return store


def build_scorer(config: Dict[str, Any]) -> IsolationForestScorer:
    scoring = get_section(config, 'scoring')
    return IsolationForestScorer(
        n_trees=scoring.get('n_trees', DEFAULT_N_TREES),
        max_samples=scoring.get('max_samples', DEFAULT_MAX_SAMPLES),
        min_transactions=scoring.get('min_transactions', DEFAULT_MIN_TRANSACTIONS),
        threshold=scoring.get('threshold', DEFAULT_ANOMALY_THRESHOLD),
        features=tuple(scoring.get('features') or ('log_amount',))
    )


def build_llm_client(config: Dict[str, Any]) -> LLMClient:
    llm = get_section(config, 'llm')
    return LLMClient(
        model=llm.get('model'),
        base_url=llm.get('base_url'),
        api_key_env=llm.get('api_key_env', 'OPENROUTER_API_KEY'),
        max_retries=llm.get('max_retries', 3),
        timeout=llm.get('timeout_seconds', 60)
    )


def build_embedder(config: Dict[str, Any]) -> EmbeddingClient:
    embedding = get_section(config, 'embedding')
    return EmbeddingClient(
        model=embedding.get('model'),
        dimension=embedding.get('dimension', DEFAULT_EMBEDDING_DIM),
        base_url=embedding.get('base_url'),
        api_key_env=embedding.get('api_key_env', 'OPENAI_API_KEY'),
        max_retries=embedding.get('max_retries', 3),
        base_delay=embedding.get('base_delay_seconds', 1)
    )


def build_vector_backend(config: Dict[str, Any]):
    vector_store = get_section(config, 'vector_store')
    backend = vector_store.get('backend', 'milvus')

    if backend == 'memory':
        return InMemoryVectorBackend()
    if backend == 'milvus':
        uri = os.getenv(vector_store.get('uri_env', 'MILVUS_URL'))
        token = os.getenv(vector_store.get('token_env', 'MILVUS_TOKEN'))
        return MilvusVectorBackend(uri=uri, token=token, nprobe=vector_store.get('nprobe', 16))

    raise ConfigurationError(f"Unknown vector_store.backend: {backend}")


def build_services(
    config: Dict[str, Any],
    store,
    llm_client=None,
    embedder=None,
    vector_backend=None
) -> Services:
    """
    Wire the full component graph.

    Provider clients and the vector backend can be passed in to replace the
    configured ones (tests, local runs).
    """
    detection = get_section(config, 'detection')
    scoring = get_section(config, 'scoring')
    alerts = get_section(config, 'alerts')
    vector_store = get_section(config, 'vector_store')
    dimension = get_section(config, 'embedding').get('dimension', DEFAULT_EMBEDDING_DIM)

    llm_client = llm_client or build_llm_client(config)
    embedder = embedder or build_embedder(config)
    vector_backend = vector_backend or build_vector_backend(config)

    scorer = build_scorer(config)
    enricher = AnomalyEnricher(llm_client)
    lifecycle = AlertLifecycleManager(
        store,
        dedup_window_hours=alerts.get('dedup_window_hours', DEFAULT_DEDUP_WINDOW_HOURS)
    )
    orchestrator = DetectionOrchestrator(
        store,
        scorer,
        enricher,
        lifecycle,
        batch_size=detection.get('batch_size', DEFAULT_BUSINESS_BATCH_SIZE),
        transaction_limit=detection.get('transaction_limit', DEFAULT_TRANSACTION_LIMIT),
        recheck_interval_hours=detection.get('recheck_interval_hours', DEFAULT_RECHECK_INTERVAL_HOURS),
        seed=scoring.get('seed', DEFAULT_SEED),
        max_background_workers=detection.get('background_workers', 2)
    )

    scan_limit = vector_store.get('scan_limit', 1000)
    transaction_memory = VectorMemoryIndex(
        vector_backend,
        embedder,
        transaction_collection(dimension, vector_store.get('transaction_collection', TRANSACTION_COLLECTION)),
        scan_limit=scan_limit
    )
    chat_memory = VectorMemoryIndex(
        vector_backend,
        embedder,
        chat_collection(dimension, vector_store.get('chat_collection', CHAT_COLLECTION)),
        scan_limit=scan_limit
    )
    retrieval = SemanticRetrievalService(transaction_memory, chat_memory)
    hooks = TransactionHooks(store, retrieval, orchestrator)
    toolkit = AssistantToolkit(store, retrieval, hooks)

    logger.info(
        "Services initialised",
        vector_backend=type(vector_backend).__name__,
        embedding_dimension=dimension,
        llm_model=getattr(llm_client, 'model', None)
    )

    return Services(
        store=store,
        scorer=scorer,
        enricher=enricher,
        lifecycle=lifecycle,
        orchestrator=orchestrator,
        retrieval=retrieval,
        hooks=hooks,
        toolkit=toolkit
    )
