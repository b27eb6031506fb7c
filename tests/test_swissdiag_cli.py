import json
import os
import subprocess
import sys
import tempfile
import textwrap
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]

# Stand-in for bin/magento, run through SWISSDIAG_PHP_BIN=<python>.
FAKE_MAGENTO = textwrap.dedent(
    """
    import json
    import sys
    from pathlib import Path

    STATE = Path(__file__).resolve().parent.parent / "fake_state.json"
    state = json.loads(STATE.read_text())
    args = sys.argv[1:]


    def save():
        STATE.write_text(json.dumps(state))


    if args[:1] == ["--version"]:
        print("Magento CLI 2.4.7")
        sys.exit(0)

    command = args[0]
    if command == "module:status":
        wanted = "--enabled" in args
        names = [name for name, on in state["modules"].items() if on == wanted]
        print("List of %s modules:" % ("enabled" if wanted else "disabled"))
        print("\\n".join(names) if names else "None")
    elif command in ("module:enable", "module:disable"):
        names = [arg for arg in args[1:] if not arg.startswith("--")]
        unknown = [name for name in names if name not in state["modules"]]
        if unknown or state.get("fail"):
            sys.stderr.write("Unknown module(s): %s\\n" % ", ".join(unknown or names))
            sys.exit(1)
        for name in names:
            state["modules"][name] = command == "module:enable"
        save()
        print("The following modules have been changed: " + ", ".join(names))
    elif command == "config:show":
        if args[1] not in state["config"]:
            sys.stderr.write("Configuration for path: %s doesn't exist\\n" % args[1])
            sys.exit(1)
        print(state["config"][args[1]])
    elif command == "config:set":
        state["config"][args[1]] = args[2]
        save()
        print("Value was saved.")
    elif command == "cache:clean":
        state.setdefault("cleaned", []).append(args[1])
        save()
        print("Cleaned cache types: " + args[1])
    else:
        sys.stderr.write("Command not defined: %s\\n" % command)
        sys.exit(1)
    """
)


class SwissdiagCliTest(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name) / "shop"
        (self.root / "bin").mkdir(parents=True)
        (self.root / "bin" / "magento").write_text(FAKE_MAGENTO, encoding="utf-8")
        self.write_state(
            {
                "modules": {
                    "Magento_Catalog": True,
                    "Swissup_A": True,
                    "Swissup_B": True,
                    "Swissup_C": False,
                    "Amasty_Base": True,
                },
                "config": {},
            }
        )
        self.env = os.environ.copy()
        self.env.update(
            {
                "SWISSDIAG_PHP_BIN": sys.executable,
                "SWISSDIAG_CONFIG": str(Path(self.tmp.name) / "missing.yaml"),
                "SWISSDIAG_ACTION_LOG": str(Path(self.tmp.name) / "actions.log"),
                "PYTHONIOENCODING": "utf-8",
            }
        )
        self.env.pop("SWISSDIAG_MAGENTO_ROOT", None)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def write_state(self, data: dict) -> None:
        (self.root / "fake_state.json").write_text(json.dumps(data), encoding="utf-8")

    def read_state(self) -> dict:
        return json.loads((self.root / "fake_state.json").read_text(encoding="utf-8"))

    def run_cli(self, *args: str, input_data: str = ""):
        return subprocess.run(
            [sys.executable, "-m", "swissdiag.cli", "--root", str(self.root), *args],
            cwd=REPO_ROOT,
            env=self.env,
            input=input_data,
            capture_output=True,
            text=True,
            check=False,
        )

    @property
    def snapshot_file(self) -> Path:
        return self.root / "var" / "swissup_modules_state.json"

    def test_disable_then_enable_round_trip(self):
        proc = self.run_cli("info:disable-swissup")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        snapshot = json.loads(self.snapshot_file.read_text(encoding="utf-8"))
        self.assertEqual(snapshot["enabled_modules"], ["Swissup_A", "Swissup_B"])
        modules = self.read_state()["modules"]
        self.assertFalse(modules["Swissup_A"] or modules["Swissup_B"] or modules["Swissup_C"])
        self.assertTrue(modules["Amasty_Base"])
        self.assertIn("swissdiag info:enable-swissup", proc.stdout)

        proc = self.run_cli("enable-swissup", "--no-interaction")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        modules = self.read_state()["modules"]
        self.assertTrue(modules["Swissup_A"] and modules["Swissup_B"])
        self.assertFalse(modules["Swissup_C"])
        self.assertFalse(self.snapshot_file.exists())

    def test_disable_twice_is_noop_the_second_time(self):
        self.assertEqual(self.run_cli("disable-swissup").returncode, 0)
        proc = self.run_cli("disable-swissup")
        self.assertEqual(proc.returncode, 0)
        self.assertIn("already disabled", proc.stdout)
        snapshot = json.loads(self.snapshot_file.read_text(encoding="utf-8"))
        self.assertEqual(snapshot["enabled_modules"], ["Swissup_A", "Swissup_B"])

    def test_enable_without_snapshot_fails(self):
        proc = self.run_cli("info:enable-swissup", "-n")
        self.assertEqual(proc.returncode, 1)
        self.assertIn("No state file found", proc.stderr)
        self.assertIn("swissdiag info:disable-swissup", proc.stdout + proc.stderr)

    def test_interactive_enable_can_be_declined(self):
        self.run_cli("disable-swissup")
        proc = self.run_cli("enable-swissup", input_data="n\n")
        self.assertEqual(proc.returncode, 0)
        self.assertIn("Operation cancelled by user.", proc.stdout)
        self.assertTrue(self.snapshot_file.exists())
        self.assertFalse(self.read_state()["modules"]["Swissup_A"])

    def test_interactive_enable_confirmed(self):
        self.run_cli("disable-swissup")
        proc = self.run_cli("enable-swissup", input_data="y\n")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertTrue(self.read_state()["modules"]["Swissup_A"])

    def test_thirdparty_group(self):
        proc = self.run_cli("info:disable-thirdparty")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        modules = self.read_state()["modules"]
        self.assertFalse(modules["Amasty_Base"])
        self.assertTrue(modules["Magento_Catalog"])
        self.assertTrue(modules["Swissup_A"])
        snapshot = json.loads((self.root / "var" / "thirdparty_modules_state.json").read_text(encoding="utf-8"))
        self.assertEqual(snapshot["enabled_modules"], ["Amasty_Base"])

    def test_enabler_failure_keeps_snapshot(self):
        state = self.read_state()
        state["fail"] = True
        self.write_state(state)
        proc = self.run_cli("disable-swissup")
        self.assertEqual(proc.returncode, 1)
        self.assertIn("Failed to disable modules", proc.stderr)
        self.assertTrue(self.snapshot_file.exists())

    def test_unknown_group(self):
        proc = self.run_cli("enable-group", "nope", "-n")
        self.assertEqual(proc.returncode, 1)
        self.assertIn("Unknown module group", proc.stderr)

    def test_custom_group_from_env(self):
        self.env["SWISSDIAG_GROUPS"] = json.dumps({"amasty": {"include_prefixes": ["Amasty_"], "label": "Amasty"}})
        proc = self.run_cli("disable-group", "amasty")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertTrue((self.root / "var" / "amasty_modules_state.json").exists())
        self.assertFalse(self.read_state()["modules"]["Amasty_Base"])

    def test_assets_updates_config_and_cleans_cache(self):
        proc = self.run_cli("info:assets", "--merge-css=1", "--bundle-js=0")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        state = self.read_state()
        self.assertEqual(state["config"], {"dev/css/merge_css_files": "1", "dev/js/enable_js_bundling": "0"})
        self.assertEqual(state["cleaned"], ["config", "full_page", "block_html", "layout"])

    def test_assets_rejects_bad_value(self):
        proc = self.run_cli("assets", "--merge-css=yes")
        self.assertEqual(proc.returncode, 2)


if __name__ == "__main__":
    unittest.main()
