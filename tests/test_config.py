import os
import tempfile
import textwrap
import unittest

from core.config import ConfigError, load_config, validate_config

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
CONFIG_DIR = os.path.join(REPO_ROOT, "config")


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def _write(self, text: str, name: str = "main_test.yaml"):
        with open(os.path.join(self.dir, name), "w", encoding="utf-8") as f:
            f.write(textwrap.dedent(text))

    def test_repo_config_is_valid(self):
        cfg = load_config(CONFIG_DIR)
        validate_config(cfg)
        self.assertTrue(cfg.paths["main"].endswith(".yaml"))
        self.assertIn("EAN13", cfg.scanner.formats)
        self.assertEqual(cfg.lookup.base_url, "https://catalogue.bnf.fr/api/SRU")

    def test_defaults_when_sections_missing(self):
        self._write("runtime:\n  log_level: debug\n")
        cfg = load_config(self.dir)
        validate_config(cfg)
        self.assertEqual(cfg.runtime.log_level, "debug")
        self.assertEqual(cfg.scanner.cooldown_ms, 1000)
        self.assertEqual(cfg.filler.overwrite_title_kinds, ["audio", "video"])

    def test_camera_common_then_selected_type(self):
        self._write(
            """
            camera:
              type: mock
              common:
                max_devices: 2
                width: 640
              mock:
                image_dir: frames
                width: 320
              opencv:
                width: 1920
            """
        )
        cfg = load_config(self.dir)
        self.assertEqual(cfg.camera.type, "mock")
        self.assertEqual(cfg.camera.max_devices, 2)
        self.assertEqual(cfg.camera.width, 320)
        self.assertEqual(cfg.camera.image_dir, "frames")

    def test_unknown_keys_rejected(self):
        cases = [
            ("telemetry:\n  on: true\n", "telemetry"),
            ("scanner:\n  speed: 3\n", "scanner.speed"),
            ("camera:\n  type: opencv\n  width: 3\n", "camera.width"),
            ("camera:\n  common:\n    zoom: 2\n", "camera.common.zoom"),
        ]
        for text, expected in cases:
            with self.subTest(expected=expected):
                self._write(text)
                with self.assertRaises(ConfigError) as cm:
                    load_config(self.dir)
                self.assertIn(expected, str(cm.exception))

    def test_exactly_one_main_file(self):
        with self.assertRaises(ConfigError):
            load_config(self.dir)
        self._write("runtime: {}\n", "main_a.yaml")
        self._write("runtime: {}\n", "main_b.yaml")
        with self.assertRaises(ConfigError):
            load_config(self.dir)

    def test_invalid_yaml(self):
        self._write("runtime: [unclosed\n")
        with self.assertRaises(ConfigError):
            load_config(self.dir)


class TestValidateConfig(unittest.TestCase):
    def test_invalid_values_raise_config_error(self):
        cases = [
            ("scanner.interval_ms", "scanner", {"interval_ms": 0}),
            ("scanner.downscale_factor", "scanner", {"downscale_factor": 0}),
            ("scanner.downscale_factor", "scanner", {"downscale_factor": 1.5}),
            ("scanner.mode", "scanner", {"mode": "manual"}),
            ("scanner.cooldown_ms", "scanner", {"cooldown_ms": True}),
            ("camera.image_dir", "camera", {"type": "mock", "image_dir": ""}),
            ("lookup.base_url", "lookup", {"base_url": "ftp://example.org"}),
            ("filler.default_category", "filler", {"default_category": "vinyls"}),
            ("filler.overwrite_title_kinds[0]", "filler", {"overwrite_title_kinds": ["games"]}),
            ("runtime.log_level", "runtime", {"log_level": "loud"}),
        ]
        for expected_name, section, patch in cases:
            with self.subTest(field=expected_name, patch=patch):
                cfg = load_config(CONFIG_DIR)
                obj = getattr(cfg, section)
                for k, v in patch.items():
                    setattr(obj, k, v)
                with self.assertRaises(ConfigError) as cm:
                    validate_config(cfg)
                self.assertIn(expected_name, str(cm.exception))


if __name__ == "__main__":
    unittest.main()
