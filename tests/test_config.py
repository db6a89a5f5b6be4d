"""Tests for config validation and type safety."""

import os
import shutil
import tempfile
import unittest

from MipView.config import ViewerConfig, _merge_dict_to_dataclass


class TestConfigValidation(unittest.TestCase):
    def test_default_config_valid(self):
        config = ViewerConfig()
        config.validate()

    def test_invalid_workers(self):
        config = ViewerConfig()
        config.max_workers = 0
        with self.assertRaises(ValueError):
            config.validate()

    def test_negative_cache_entries(self):
        config = ViewerConfig()
        config.decode.cache_entries = -1
        with self.assertRaises(ValueError):
            config.validate()

    def test_invalid_unavailable_policy(self):
        config = ViewerConfig()
        config.preview.on_unavailable = "ignore"
        with self.assertRaises(ValueError) as ctx:
            config.validate()
        self.assertIn("on_unavailable", str(ctx.exception))

    def test_invalid_colors(self):
        for color in ([0, 0, 0], [0, 0, 0, 256], "red", [0, 0, 0, 1.5]):
            config = ViewerConfig()
            config.preview.background = color
            with self.assertRaises(ValueError):
                config.validate()

    def test_invalid_checker_size(self):
        config = ViewerConfig()
        config.preview.checker_size = 0
        with self.assertRaises(ValueError):
            config.validate()

    def test_reports_every_error(self):
        config = ViewerConfig()
        config.max_workers = 0
        config.preview.checker_size = 0
        with self.assertRaises(ValueError) as ctx:
            config.validate()
        self.assertIn("max_workers", str(ctx.exception))
        self.assertIn("checker_size", str(ctx.exception))

    def test_config_validate_rejects_invalid_log_level(self):
        config = ViewerConfig()
        config.log_level = "VERBOSE"
        with self.assertRaises(ValueError) as ctx:
            config.validate()
        self.assertIn("log_level", str(ctx.exception))


class TestMergeDict(unittest.TestCase):
    def test_type_mismatch_keeps_default(self):
        config = ViewerConfig()
        with self.assertLogs("mip_viewer.config", level="WARNING"):
            _merge_dict_to_dataclass(config, {"max_workers": "four"})
        self.assertEqual(config.max_workers, 1)

    def test_exact_float_promoted_to_int(self):
        config = ViewerConfig()
        _merge_dict_to_dataclass(config, {"max_workers": 4.0})
        self.assertEqual(config.max_workers, 4)
        self.assertIsInstance(config.max_workers, int)

    def test_nested_section(self):
        config = ViewerConfig()
        _merge_dict_to_dataclass(config, {"decode": {"allow_native_upload": False}})
        self.assertFalse(config.decode.allow_native_upload)
        self.assertEqual(config.decode.cache_entries, 64)

    def test_unknown_key_warns(self):
        config = ViewerConfig()
        with self.assertLogs("mip_viewer.config", level="WARNING") as cm:
            _merge_dict_to_dataclass(config, {"layout": {"gutter": 2}})
        self.assertTrue(any("layout.gutter" in msg for msg in cm.output))

    def test_null_keeps_default(self):
        config = ViewerConfig()
        with self.assertLogs("mip_viewer.config", level="WARNING"):
            _merge_dict_to_dataclass(config, {"output_path": None})
        self.assertEqual(config.output_path, "atlas.png")


class TestYAMLRoundTrip(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_round_trip(self):
        path = os.path.join(self.tmpdir, "viewer.yaml")
        config = ViewerConfig()
        config.max_workers = 3
        config.preview.on_unavailable = "skip"
        config.layout.sum_actual_widths = True
        config.to_yaml(path)
        loaded = ViewerConfig.from_yaml(path)
        self.assertEqual(loaded, config)

    def test_missing_file_returns_defaults(self):
        loaded = ViewerConfig.from_yaml(os.path.join(self.tmpdir, "absent.yaml"))
        self.assertEqual(loaded, ViewerConfig())

    def test_empty_file_returns_defaults(self):
        path = os.path.join(self.tmpdir, "empty.yaml")
        open(path, "w").close()
        self.assertEqual(ViewerConfig.from_yaml(path), ViewerConfig())

    def test_non_mapping_rejected(self):
        path = os.path.join(self.tmpdir, "list.yaml")
        with open(path, "w", encoding="utf-8") as f:
            f.write("- 1\n- 2\n")
        with self.assertRaises(ValueError):
            ViewerConfig.from_yaml(path)

    def test_malformed_yaml_rejected(self):
        path = os.path.join(self.tmpdir, "bad.yaml")
        with open(path, "w", encoding="utf-8") as f:
            f.write("decode: [unclosed\n")
        with self.assertRaises(ValueError):
            ViewerConfig.from_yaml(path)

    def test_invalid_values_name_file(self):
        path = os.path.join(self.tmpdir, "invalid.yaml")
        with open(path, "w", encoding="utf-8") as f:
            f.write("preview:\n  on_unavailable: explode\n")
        with self.assertRaises(ValueError) as ctx:
            ViewerConfig.from_yaml(path)
        self.assertIn("invalid.yaml", str(ctx.exception))

    def test_config_version_future_warns(self):
        path = os.path.join(self.tmpdir, "viewer.yaml")
        config = ViewerConfig()
        config.config_version = 99
        config.to_yaml(path)
        with self.assertLogs("mip_viewer.config", level="WARNING") as cm:
            ViewerConfig.from_yaml(path)
        self.assertTrue(
            any("config_version=99" in msg for msg in cm.output),
            f"Expected version warning in: {cm.output}"
        )

    def test_no_temp_files_left(self):
        path = os.path.join(self.tmpdir, "viewer.yaml")
        ViewerConfig().to_yaml(path)
        self.assertEqual(os.listdir(self.tmpdir), ["viewer.yaml"])


if __name__ == "__main__":
    unittest.main(verbosity=2)
