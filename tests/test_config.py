import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from api.config import DEFAULT_STATIC_DIR, load_settings
from api.models import Settings


class TestLoadSettings(unittest.TestCase):
    def load(self, environ, file_content=None):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "settings.json"
            if file_content is not None:
                path.write_text(file_content, encoding="utf-8")
            with patch.dict(os.environ, environ, clear=True):
                return load_settings(path)

    def test_defaults(self):
        settings = self.load({})
        self.assertEqual(settings.port, 3000)
        self.assertEqual(settings.host, "0.0.0.0")
        self.assertFalse(settings.buffer_upstream)
        self.assertTrue(settings.expose_error_details)
        self.assertEqual(settings.static_dir, str(DEFAULT_STATIC_DIR))

    def test_port_from_environment(self):
        self.assertEqual(self.load({"PORT": "8080"}).port, 8080)

    def test_prefixed_environment_variables(self):
        settings = self.load({
            "CECILEFY_READ_TIMEOUT": "12.5",
            "CECILEFY_EXPOSE_ERRORS": "false",
            "CECILEFY_LOG_LEVEL": "DEBUG",
        })
        self.assertEqual(settings.read_timeout, 12.5)
        self.assertFalse(settings.expose_error_details)
        self.assertEqual(settings.log_level, "DEBUG")

    def test_empty_environment_value_is_ignored(self):
        self.assertEqual(self.load({"PORT": ""}).port, 3000)

    def test_environment_overrides_file(self):
        content = json.dumps({"port": 4000, "read_timeout": 5, "log_level": "DEBUG"})
        settings = self.load({"PORT": "4100", "CECILEFY_BUFFER_UPSTREAM": "true"}, content)
        self.assertEqual(settings.port, 4100)
        self.assertEqual(settings.read_timeout, 5.0)
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertTrue(settings.buffer_upstream)

    def test_bad_file_keeps_environment(self):
        settings = self.load({"PORT": "4200"}, json.dumps({"read_timeout": -1}))
        self.assertEqual(settings.port, 4200)
        self.assertEqual(settings.read_timeout, 30.0)

    def test_invalid_values_fall_back_to_defaults(self):
        settings = self.load({"PORT": "not-a-port"}, "{not json")
        self.assertEqual(settings.port, 3000)
        self.assertEqual(settings.static_dir, str(DEFAULT_STATIC_DIR))

    def test_settings_accept_field_names(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(port=5000, expose_error_details=False)
        self.assertEqual(settings.port, 5000)
        self.assertFalse(settings.expose_error_details)


if __name__ == "__main__":
    unittest.main()
