"""Time helpers shared by stores, lifecycle and orchestrator"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def epoch_millis(moment: datetime) -> int:
    """Integer milliseconds since the epoch, as stored in chat memory"""
    return int(moment.timestamp() * 1000)
