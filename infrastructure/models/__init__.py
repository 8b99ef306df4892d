"""Infrastructure models package exports."""
from .base import Base, metadata
from .offload_record import OffloadRecordModel

__all__ = [
    "Base",
    "metadata",
    "OffloadRecordModel",
]
