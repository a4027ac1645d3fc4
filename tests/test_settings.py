import os
import sys
import unittest

import yaml

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import YamlConfig
from db import SettingsRepository
from settings_schema import SettingsSchema, validate_settings


class YamlConfigTest(unittest.TestCase):
    def setUp(self) -> None:
        self.path = "test_config.yaml"
        if os.path.exists(self.path):
            os.remove(self.path)

    def tearDown(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)

    def test_missing_file_loads_empty(self) -> None:
        self.assertEqual(YamlConfig(self.path).load(), {})

    def test_save_and_load(self) -> None:
        cfg = YamlConfig(self.path)
        cfg.save({"cardio_window_days": 14, "weight_unit": "lb"})
        self.assertEqual(
            cfg.load(), {"cardio_window_days": 14, "weight_unit": "lb"}
        )

    def test_non_mapping_is_rejected(self) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("- a\n- b\n")
        with self.assertRaises(ValueError):
            YamlConfig(self.path).load()


class SettingsSchemaTest(unittest.TestCase):
    def test_defaults(self) -> None:
        schema = SettingsSchema()
        self.assertEqual(schema.storage_key, "@gym_ts_v3")
        self.assertEqual(schema.cardio_window_days, 30)
        self.assertEqual(schema.stretch_window_days, 30)

    def test_invalid_values(self) -> None:
        with self.assertRaises(ValueError):
            validate_settings({"cardio_window_days": 0})
        with self.assertRaises(ValueError):
            validate_settings({"storage_key": ""})
        validate_settings({"stretch_window_days": "7"})


class SettingsRepositoryTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_settings.db"
        self.yaml_path = "test_settings_repo.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_defaults_written_to_yaml(self) -> None:
        repo = SettingsRepository(self.db_path, self.yaml_path)
        with open(self.yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        self.assertEqual(data["cardio_window_days"], 30)
        self.assertEqual(data["storage_key"], "@gym_ts_v3")
        self.assertEqual(repo.get_text("deleted_workout_label", ""), "Deleted workout")

    def test_yaml_overrides_database(self) -> None:
        YamlConfig(self.yaml_path).save({"stretch_window_days": 3})
        repo = SettingsRepository(self.db_path, self.yaml_path)
        self.assertEqual(repo.get_int("stretch_window_days", 30), 3)

        YamlConfig(self.yaml_path).save(
            {**repo.all_settings(), "stretch_window_days": 9}
        )
        self.assertEqual(repo.get_int("stretch_window_days", 30), 9)

    def test_invalid_yaml_is_rejected(self) -> None:
        YamlConfig(self.yaml_path).save({"cardio_window_days": -1})
        with self.assertRaises(ValueError):
            SettingsRepository(self.db_path, self.yaml_path)

    def test_set_and_update(self) -> None:
        repo = SettingsRepository(self.db_path, self.yaml_path)
        repo.set_int("cardio_window_days", 12)
        self.assertEqual(repo.get_int("cardio_window_days", 30), 12)
        repo.update({"weight_unit": "lb", "stretch_window_days": 5})
        settings = repo.all_settings()
        self.assertEqual(settings["weight_unit"], "lb")
        self.assertEqual(settings["stretch_window_days"], 5)
        self.assertEqual(YamlConfig(self.yaml_path).load()["weight_unit"], "lb")

    def test_numeric_text_settings_stay_text(self) -> None:
        repo = SettingsRepository(self.db_path, self.yaml_path)
        repo.set_text("deleted_workout_label", "2024")
        settings = repo.all_settings()
        self.assertEqual(settings["deleted_workout_label"], "2024")
        self.assertEqual(settings["cardio_window_days"], 30)
        repo.update({"weight_unit": "lb"})
        repo.set_int("stretch_window_days", 10)
        self.assertEqual(repo.get_text("deleted_workout_label", ""), "2024")
        self.assertEqual(repo.get_int("stretch_window_days", 30), 10)

    def test_invalid_update_keeps_previous_values(self) -> None:
        repo = SettingsRepository(self.db_path, self.yaml_path)
        with self.assertRaises(ValueError):
            repo.set_int("cardio_window_days", 0)
        with self.assertRaises(ValueError):
            repo.update({"stretch_window_days": 2, "storage_key": ""})
        self.assertEqual(repo.get_int("cardio_window_days", 99), 30)
        self.assertEqual(repo.get_int("stretch_window_days", 99), 30)


if __name__ == "__main__":
    unittest.main()
