from .models import BridgeSettings
from .store import SettingsStore

__all__ = [
    "BridgeSettings",
    "SettingsStore",
]
