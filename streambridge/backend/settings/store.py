from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from .models import BridgeSettings

PORT_ENV_VAR = "PORT"

logger = logging.getLogger(__name__)


class SettingsStore:
    """
    Read-only JSON settings file with a `PORT` environment override.

    A missing or unreadable file yields defaults; the service never writes it.
    """

    def __init__(self, *, path: Path, environ: Optional[Mapping[str, str]] = None) -> None:
        self._path = path
        self._environ = os.environ if environ is None else environ

    def load(self) -> BridgeSettings:
        settings = self._load_file()

        port = self._environ.get(PORT_ENV_VAR)
        if port:
            try:
                settings.port = int(port)
            except ValueError:
                logger.warning("Ignoring non-numeric %s=%r", PORT_ENV_VAR, port)
        return settings

    def _load_file(self) -> BridgeSettings:
        if not self._path.exists():
            return BridgeSettings()

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable settings file %s: %s", self._path, exc)
            return BridgeSettings()

        if not isinstance(raw, dict):
            return BridgeSettings()

        return BridgeSettings.from_persist_dict(raw)
