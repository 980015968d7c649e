"""Utility modules"""

from .config_loader import load_config, save_config, get_section
from .errors import (
    SmartKasError,
    ConfigurationError,
    LLMError,
    EmbeddingError,
    VectorStoreError,
    StoreError,
    AlertNotFoundError,
    OwnershipError,
    InvalidTransitionError
)

__all__ = [
    "load_config",
    "save_config",
    "get_section",
    "SmartKasError",
    "ConfigurationError",
    "LLMError",
    "EmbeddingError",
    "VectorStoreError",
    "StoreError",
    "AlertNotFoundError",
    "OwnershipError",
    "InvalidTransitionError"
]
