"""Custom exceptions for the insights system"""


class SmartKasError(Exception):
    """Base exception for insights system errors"""
    pass


class ConfigurationError(SmartKasError):
    """Configuration loading errors"""
    pass


class LLMError(SmartKasError):
    """Text-generation provider errors"""
    pass


class EmbeddingError(SmartKasError):
    """Embedding provider errors, including dimension mismatches"""
    pass


class VectorStoreError(SmartKasError):
    """Vector index provisioning and query errors"""
    pass


class StoreError(SmartKasError):
    """Record store errors"""
    pass


class AlertNotFoundError(SmartKasError):
    """Alert id does not exist"""
    pass


class OwnershipError(SmartKasError):
    """Caller does not own the business behind a record"""
    pass


class InvalidTransitionError(SmartKasError):
    """Alert status change not allowed by the lifecycle"""
    pass
