import os
import json
import tempfile
import unittest

from config_manager.config_manager import (
    ConfigurationManager, GenerationConfig, OutputConfig, clamp_edge_case_ratio, clamp_record_count,
)


class TestGenerationConfig(unittest.TestCase):
    def test_defaults(self):
        config = GenerationConfig()
        self.assertEqual(config.input_mode, "json_schema")
        self.assertEqual(config.record_count, 5)
        self.assertEqual(config.edge_case_ratio, 0)
        self.assertEqual(config.output.format, "json")
        self.assertEqual(config.logging.level, "INFO")

    def test_values_are_clamped_with_a_warning(self):
        with self.assertLogs("config_manager.config_manager", level="WARNING") as logs:
            self.assertEqual(clamp_record_count(5000), 1000)
            self.assertEqual(clamp_record_count(0), 1)
            self.assertEqual(clamp_edge_case_ratio(150), 100)
            self.assertEqual(clamp_edge_case_ratio(-1), 0)
            self.assertEqual(clamp_edge_case_ratio(float("inf")), 100)
        self.assertEqual(len(logs.output), 5)
        self.assertEqual(clamp_edge_case_ratio(12.5), 12.5)

        with self.assertLogs("config_manager.config_manager", level="WARNING"):
            config = GenerationConfig(record_count=5000, edge_case_ratio=150)
        self.assertEqual((config.record_count, config.edge_case_ratio), (1000, 100))

    def test_invalid_mode(self):
        with self.assertRaises(ValueError):
            GenerationConfig(input_mode="spreadsheet")

    def test_from_dict_builds_nested_sections(self):
        config = GenerationConfig.from_dict({
            "input_mode": "sample",
            "seed": 7,
            "output": {"format": "csv", "directory": "out"},
            "logging": {"level": "debug"},
        })
        self.assertEqual(config.input_mode, "sample")
        self.assertEqual(config.output.format, "csv")
        self.assertEqual(config.logging.level, "DEBUG")
        self.assertEqual(config.to_dict()["seed"], 7)

    def test_unknown_output_format_falls_back(self):
        with self.assertLogs("config_manager.config_manager", level="WARNING"):
            self.assertEqual(OutputConfig(format="xml").format, "json")

    def test_output_path_is_sanitized(self):
        output = OutputConfig(directory="out")
        self.assertEqual(output.get_output_path("my table/v2"), os.path.join("out", "my_table_v2.json"))
        self.assertEqual(output.get_output_path(None), os.path.join("out", "records.json"))
        self.assertEqual(output.get_issues_path(), os.path.join("out", "issues.json"))


class TestConfigurationManager(unittest.TestCase):
    def setUp(self):
        self.manager = ConfigurationManager()

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            self.manager.load_configuration("does/not/exist.json")

    def test_file_with_overrides(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "config.json")
            with open(path, "w", encoding="utf-8") as config_file:
                json.dump({"record_count": 3, "output": {"format": "jsonl"}}, config_file)

            config = self.manager.load_configuration(path, rows=8, output_format=None, seed=11)

        self.assertEqual(config.record_count, 8)
        self.assertEqual(config.output.format, "jsonl")
        self.assertEqual(config.seed, 11)

    def test_invalid_json_file(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "config.json")
            with open(path, "w", encoding="utf-8") as config_file:
                config_file.write("{not json")
            with self.assertRaises(ValueError):
                self.manager.load_configuration(path)

    def test_unknown_keys_are_rejected(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "config.json")
            with open(path, "w", encoding="utf-8") as config_file:
                json.dump({"colour": "blue"}, config_file)
            with self.assertRaises(ValueError):
                self.manager.load_configuration(path)

    def test_save_and_reload(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "nested", "saved.json")
            self.manager.save_configuration(GenerationConfig(record_count=42), path)
            self.assertEqual(self.manager.load_configuration(path).record_count, 42)


if __name__ == '__main__':
    unittest.main()
