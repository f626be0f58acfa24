from app.models.note import Note
from app.models.sweep_lock import SweepLock

__all__ = ["Note", "SweepLock"]
