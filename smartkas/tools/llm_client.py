"""OpenAI-compatible LLM client with cost tracking and retries."""

from openai import OpenAI
import os
import time
from typing import Optional
from smartkas.utils.metrics import (
    llm_tokens_counter,
    llm_cost_counter,
    llm_api_latency,
    llm_rate_limit_hits
)
from smartkas.utils.errors import LLMError
from smartkas.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "anthropic/claude-haiku-4.5"

# Pricing per 1M tokens (input tokens, simplified)
MODEL_PRICING = {
    "anthropic/claude-haiku-4.5": 0.80 / 1_000_000,
    "anthropic/claude-3-5-haiku": 0.80 / 1_000_000,
    "anthropic/claude-sonnet-4.5": 3.0 / 1_000_000,
    "google/gemini-2.5-flash": 0.30 / 1_000_000,
    "meta-llama/llama-3.1-70b-instruct": 0.40 / 1_000_000,
    "openai/gpt-4o-mini": 0.15 / 1_000_000,
}


def calculate_cost(tokens: int, model: str) -> float:
    """
    Calculate cost based on token usage and model pricing.

    Args:
        tokens: Number of tokens used
        model: Model name

    Returns:
        Cost in USD
    """
    price_per_token = MODEL_PRICING.get(model, 0.15 / 1_000_000)
    return tokens * price_per_token


class LLMClient:
    """Chat-completion client, constructed once at process start and injected"""

    def __init__(
        self,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key_env: str = "OPENROUTER_API_KEY",
        max_retries: int = 3,
        timeout: float = 60,
        temperature: float = 0.0
    ):
        self.model = model or os.getenv("DEFAULT_LLM_MODEL", DEFAULT_MODEL)
        self.base_url = base_url or DEFAULT_BASE_URL
        self.api_key_env = api_key_env
        self.max_retries = max_retries
        self.timeout = timeout
        self.temperature = temperature
        self._client = None

    def _get_client(self) -> OpenAI:
        """Create the SDK client on first use"""
        if self._client is None:
            api_key = os.getenv(self.api_key_env)
            if not api_key:
                raise LLMError(f"{self.api_key_env} environment variable is not set")
            self._client = OpenAI(api_key=api_key, base_url=self.base_url)
        return self._client

    def complete(self, system_instruction: str, prompt: str, caller: str = "unknown") -> str:
        """
        Call the model with a system instruction and one user message.

        Args:
            system_instruction: System prompt
            prompt: User prompt
            caller: Component name, for metrics

        Returns:
            Raw response text

        Raises:
            LLMError: If the API call fails after retries
        """
        client = self._get_client()
        messages = [
            {"role": "system", "content": system_instruction},
            {"role": "user", "content": prompt},
        ]

        for attempt in range(self.max_retries):
            try:
                start_time = time.time()

                response = client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=self.temperature,
                    timeout=self.timeout
                )

                latency = time.time() - start_time
                tokens = response.usage.total_tokens if response.usage else 0
                cost = calculate_cost(tokens, self.model)

                llm_tokens_counter.labels(model_name=self.model, caller=caller).inc(tokens)
                llm_cost_counter.labels(model_name=self.model).inc(cost)
                llm_api_latency.labels(model_name=self.model).observe(latency)

                logger.info(
                    "LLM call successful",
                    model=self.model,
                    tokens=tokens,
                    cost=cost,
                    latency=latency,
                    caller=caller
                )

                return response.choices[0].message.content or ""

            except Exception as e:
                if "rate_limit" in str(e).lower() or "429" in str(e):
                    llm_rate_limit_hits.labels(model_name=self.model).inc()
                    logger.warning(f"Rate limit hit, retrying... (attempt {attempt + 1}/{self.max_retries})")
                    if attempt < self.max_retries - 1:
                        time.sleep(2 ** attempt)
                    else:
                        raise LLMError(f"Rate limit exceeded after {self.max_retries} attempts: {e}")
                else:
                    logger.error(f"LLM API error: {e}", attempt=attempt)
                    if attempt < self.max_retries - 1:
                        time.sleep(1)
                    else:
                        raise LLMError(f"LLM API call failed after {self.max_retries} attempts: {e}")

        raise LLMError("LLM client configured with zero retries")
