import json
import tempfile
import unittest
from pathlib import Path

from streambridge.backend.settings.models import BridgeSettings
from streambridge.backend.settings.store import SettingsStore


class TestSettingsStore(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "config.json"

    def _write(self, payload) -> None:
        self.path.write_text(json.dumps(payload), encoding="utf-8")

    def test_missing_file_gives_defaults(self) -> None:
        settings = SettingsStore(path=self.path, environ={}).load()
        self.assertEqual(settings, BridgeSettings())
        self.assertEqual(settings.port, 3000)
        self.assertEqual(settings.ready_timeout_s, 30.0)
        self.assertEqual(settings.media_suffix, ".mp4")

    def test_file_values_are_loaded(self) -> None:
        self._write(
            {
                "port": 8080,
                "ready_timeout_s": 5,
                "public_base_url": "https://media.example.com",
                "proxy_url": "http://127.0.0.1:7890",
                "cors_origins": ["https://app.example.com"],
                "log_level": "debug",
            }
        )
        settings = SettingsStore(path=self.path, environ={}).load()

        self.assertEqual(settings.port, 8080)
        self.assertEqual(settings.ready_timeout_s, 5.0)
        self.assertEqual(settings.public_base_url, "https://media.example.com")
        self.assertEqual(settings.proxy_url, "http://127.0.0.1:7890")
        self.assertEqual(settings.cors_origins, ["https://app.example.com"])
        self.assertEqual(settings.log_level, "DEBUG")

    def test_bad_values_fall_back_to_defaults(self) -> None:
        self._write({"port": "abc", "ready_timeout_s": -1, "chunk_size": 0, "proxy_url": "  "})
        settings = SettingsStore(path=self.path, environ={}).load()

        self.assertEqual(settings.port, 3000)
        self.assertEqual(settings.ready_timeout_s, 30.0)
        self.assertEqual(settings.chunk_size, 256 * 1024)
        self.assertIsNone(settings.proxy_url)

    def test_unreadable_or_non_object_file(self) -> None:
        for raw in ("{not json", "[1, 2, 3]"):
            with self.subTest(raw=raw):
                self.path.write_text(raw, encoding="utf-8")
                self.assertEqual(SettingsStore(path=self.path, environ={}).load(), BridgeSettings())

    def test_port_env_overrides_file(self) -> None:
        self._write({"port": 8080})
        settings = SettingsStore(path=self.path, environ={"PORT": "4000"}).load()
        self.assertEqual(settings.port, 4000)

    def test_non_numeric_port_env_is_ignored(self) -> None:
        with self.assertLogs("streambridge.backend.settings.store", level="WARNING"):
            settings = SettingsStore(path=self.path, environ={"PORT": "http"}).load()
        self.assertEqual(settings.port, 3000)


if __name__ == "__main__":
    unittest.main()
