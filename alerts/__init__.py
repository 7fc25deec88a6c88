"""Alert delivery modules."""
from .manager import AlertLog, AlertManager
from .relay import RelayNotifier
from .speech import Speaker
from .storage import AlertStorage

__all__ = ["AlertLog", "AlertManager", "RelayNotifier", "Speaker", "AlertStorage"]
