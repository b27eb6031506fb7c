import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from swissdiag.lib import config_loader


class ConfigLoaderTest(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self.tmp.name)
        self.config = self.tmp_path / "config.yaml"

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_defaults_without_file(self):
        with mock.patch.dict(os.environ, {"SWISSDIAG_CONFIG": str(self.config)}, clear=True):
            settings = config_loader.load_settings(magento_root=str(self.tmp_path))
        self.assertEqual(settings.php_bin, "php")
        self.assertEqual(settings.state_root, self.tmp_path / "var")
        self.assertFalse(settings.force)
        self.assertIn("app/code/Swissup/", settings.override_folders)

    def test_yaml_then_env_then_flag(self):
        self.config.write_text(
            "magento_root: /var/www/from-yaml\n"
            "php_bin: /usr/bin/php8.1\n"
            "state_dir: /srv/state\n"
            "force: yes\n"
            "cache_types: [config]\n"
            "groups:\n"
            "  amasty:\n"
            "    include_prefixes: [Amasty_]\n",
            encoding="utf-8",
        )
        env = {"SWISSDIAG_CONFIG": str(self.config), "SWISSDIAG_PHP_BIN": "/opt/php/bin/php"}
        with mock.patch.dict(os.environ, env, clear=True):
            settings = config_loader.load_settings()
            self.assertEqual(settings.magento_root, Path("/var/www/from-yaml"))
            self.assertEqual(settings.php_bin, "/opt/php/bin/php")
            self.assertTrue(settings.force)
            self.assertEqual(settings.state_root, Path("/srv/state"))
            self.assertEqual(settings.cache_types, ["config"])
            self.assertEqual(settings.groups["amasty"]["include_prefixes"], ["Amasty_"])

            flagged = config_loader.load_settings(magento_root="/var/www/flag")
            self.assertEqual(flagged.magento_root, Path("/var/www/flag"))

    def test_invalid_yaml_is_ignored(self):
        self.config.write_text("- just\n- a list\n", encoding="utf-8")
        self.assertEqual(config_loader.load_yaml_file(self.config), {})
        self.config.write_text("key: [unclosed\n", encoding="utf-8")
        self.assertEqual(config_loader.load_yaml_file(self.config), {})

    def test_load_json_env(self):
        with mock.patch.dict(os.environ, {"SWISSDIAG_EXTRA": '{"a": 1}', "SWISSDIAG_BAD": "{"}, clear=True):
            self.assertEqual(config_loader.load_json_env("SWISSDIAG_EXTRA"), {"a": 1})
            self.assertEqual(config_loader.load_json_env("SWISSDIAG_BAD"), {})
            self.assertEqual(config_loader.load_json_env("SWISSDIAG_MISSING"), {})


if __name__ == "__main__":
    unittest.main()
