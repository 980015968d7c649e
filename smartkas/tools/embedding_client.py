"""Embedding provider client (OpenAI-compatible embeddings endpoint)."""

from openai import OpenAI
import os
import time
from typing import List, Optional
from smartkas.constants import DEFAULT_EMBEDDING_DIM
from smartkas.orchestrator.retry_handler import retry_with_exponential_backoff
from smartkas.utils.errors import EmbeddingError
from smartkas.utils.logging import get_logger
from smartkas.utils.metrics import embedding_calls, embedding_latency

logger = get_logger(__name__)

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_EMBEDDING_BASE_URL = "https://api.openai.com/v1"


class EmbeddingClient:
    """Maps text to a fixed-dimension vector; the dimension must match the vector index schema"""

    def __init__(
        self,
        model: Optional[str] = None,
        dimension: int = DEFAULT_EMBEDDING_DIM,
        base_url: Optional[str] = None,
        api_key_env: str = "OPENAI_API_KEY",
        max_retries: int = 3,
        base_delay: float = 1,
        timeout: float = 30
    ):
        self.model = model or os.getenv("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL)
        self.dimension = dimension
        self.base_url = base_url or DEFAULT_EMBEDDING_BASE_URL
        self.api_key_env = api_key_env
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.timeout = timeout
        self._client = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            api_key = os.getenv(self.api_key_env)
            if not api_key:
                raise EmbeddingError(f"{self.api_key_env} environment variable is not set")
            self._client = OpenAI(api_key=api_key, base_url=self.base_url)
        return self._client

    def _request(self, text: str) -> List[float]:
        response = self._get_client().embeddings.create(
            model=self.model,
            input=text,
            dimensions=self.dimension,
            timeout=self.timeout
        )
        return list(response.data[0].embedding)

    def embed(self, text: str) -> List[float]:
        """
        Embed one text.

        Raises:
            EmbeddingError: Provider unavailable after retries, or wrong dimension
        """
        self._get_client()  # a missing key is not retried
        start_time = time.time()
        try:
            vector = retry_with_exponential_backoff(
                self._request,
                text or " ",
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                error_cls=EmbeddingError
            )
        except EmbeddingError:
            embedding_calls.labels(status="failure").inc()
            raise
        embedding_latency.observe(time.time() - start_time)

        if len(vector) != self.dimension:
            embedding_calls.labels(status="failure").inc()
            raise EmbeddingError(
                f"Embedding model {self.model} returned {len(vector)} dims, expected {self.dimension}"
            )

        embedding_calls.labels(status="success").inc()
        logger.debug("Embedded text", model=self.model, chars=len(text or ""))
        return vector
