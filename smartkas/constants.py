"""Constants and enums for the insights system"""

from enum import Enum


class Severity(str, Enum):
    """Alert severity levels"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AlertStatus(str, Enum):
    """Alert lifecycle states"""
    NEW = "new"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class TransactionType(str, Enum):
    """Cash direction of a transaction"""
    IN = "in"
    OUT = "out"


class ChatRole(str, Enum):
    """Speaker of a chat turn"""
    USER = "user"
    ASSISTANT = "assistant"


# Forward order of the alert state machine
ALERT_STATUS_ORDER = {
    AlertStatus.NEW: 0,
    AlertStatus.IN_PROGRESS: 1,
    AlertStatus.RESOLVED: 2,
}

# Detection defaults
DEFAULT_MIN_TRANSACTIONS = 5
DEFAULT_TRANSACTION_LIMIT = 50
DEFAULT_BUSINESS_BATCH_SIZE = 5
DEFAULT_RECHECK_INTERVAL_HOURS = 24
DEFAULT_ANOMALY_THRESHOLD = 0.5
DEFAULT_SEED = 42

# Isolation forest defaults
DEFAULT_N_TREES = 100
DEFAULT_MAX_SAMPLES = 256

# Alert dedup window
DEFAULT_DEDUP_WINDOW_HOURS = 24

# Retrieval defaults
DEFAULT_SEARCH_LIMIT = 5
DEFAULT_HISTORY_LIMIT = 50
DEFAULT_EMBEDDING_DIM = 768

# Category used when the assistant saves a transaction without one
DEFAULT_CATEGORY = "Lainnya"
