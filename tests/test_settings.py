"""Tests for the settings module."""

import json
import os
import shutil
import tempfile
import unittest

import namaz.settings as settings_mod
from namaz.settings import DEFAULT_SETTINGS, calculation_config, data_dir, load_settings, save_settings


class TestSettings(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.mkdtemp()
        self._orig_settings_file = settings_mod.SETTINGS_FILE
        settings_mod.SETTINGS_FILE = os.path.join(self._tmpdir, "settings.json")

    def tearDown(self):
        settings_mod.SETTINGS_FILE = self._orig_settings_file
        shutil.rmtree(self._tmpdir, ignore_errors=True)

    def test_defaults_without_file(self):
        self.assertEqual(load_settings(), DEFAULT_SETTINGS)

    def test_file_overrides_defaults(self):
        save_settings({"madhab": "HANAFI", "timezone": "Asia/Karachi", "unknown": 1})
        loaded = load_settings()
        self.assertEqual(loaded["madhab"], "HANAFI")
        self.assertEqual(loaded["timezone"], "Asia/Karachi")
        self.assertEqual(loaded["calculation_method"], "MUSLIM_WORLD_LEAGUE")
        self.assertNotIn("unknown", loaded)

    def test_invalid_json_falls_back(self):
        with open(settings_mod.SETTINGS_FILE, "w") as f:
            f.write("not valid json")
        self.assertEqual(load_settings(), DEFAULT_SETTINGS)

    def test_non_object_falls_back(self):
        with open(settings_mod.SETTINGS_FILE, "w") as f:
            json.dump(["KARACHI"], f)
        self.assertEqual(load_settings(), DEFAULT_SETTINGS)

    def test_calculation_config(self):
        config = calculation_config(dict(DEFAULT_SETTINGS, calculation_method="Karachi", timezone="UTC"))
        self.assertEqual(config.method, "Karachi")
        self.assertEqual(config.madhab, "SHAFI")
        self.assertEqual(config.timezone, "UTC")

    def test_calculation_config_rejects_unknown_names(self):
        with self.assertRaises(ValueError):
            calculation_config(dict(DEFAULT_SETTINGS, calculation_method="Nope"))
        with self.assertRaises(ValueError):
            calculation_config(dict(DEFAULT_SETTINGS, madhab="Nope"))
        with self.assertRaises(ValueError):
            calculation_config(dict(DEFAULT_SETTINGS, timezone="Mars/Olympus"))

    def test_data_dir(self):
        self.assertEqual(data_dir(DEFAULT_SETTINGS), settings_mod.DATA_DIR)
        self.assertEqual(data_dir(dict(DEFAULT_SETTINGS, data_dir=self._tmpdir)), self._tmpdir)


if __name__ == "__main__":
    unittest.main()
