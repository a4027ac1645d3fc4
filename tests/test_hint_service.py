import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import RecordStore
from hint_service import HintService


def weight(name, sets):
    return {"type": "PESO", "exerciseName": name, "sets": sets}


def stretch(name, seconds):
    return {"type": "ALONGAMENTO", "exerciseName": name, "seconds": seconds}


def cardio(name, minutes):
    return {"type": "AEROBICO", "exerciseName": name, "minutes": minutes}


class HintServiceTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_hints.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        self.store = RecordStore(self.db_path)
        self.hints = HintService(self.store)
        self.a = self.store.create_workout("A").id
        self.b = self.store.create_workout("B").id

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def log(self, workout_id, started, *entries):
        return self.store.create_session(
            {
                "workoutId": workout_id,
                "startedAt": started,
                "endedAt": started,
                "entries": list(entries),
            }
        )

    def test_empty_history(self) -> None:
        self.assertEqual(self.hints.last_same_workout_sets(self.a, "Bench"), (None, None, None))
        self.assertEqual(self.hints.global_averages_by_set("Bench"), (None, None, None))
        self.assertEqual(self.hints.global_last_by_set("Bench"), (None, None, None))
        self.assertIsNone(self.hints.global_avg_seconds("Calf"))
        self.assertIsNone(self.hints.global_last_seconds("Calf"))
        self.assertIsNone(self.hints.global_avg_minutes("Run"))
        self.assertIsNone(self.hints.global_last_minutes("Run"))

    def test_last_same_workout_sets(self) -> None:
        # stored out of chronological order on purpose
        self.log(self.a, "2024-03-01T10:00:00", weight("Bench", [52, None, None]))
        self.log(self.a, "2024-01-01T10:00:00", weight("Bench", [50, 55, 60]))
        self.log(self.b, "2024-04-01T10:00:00", weight("Bench", [70, 70, 70]))
        self.log(self.a, "2024-05-01T10:00:00", cardio("Bike", 10))

        self.assertEqual(self.hints.last_same_workout_sets(self.a, " BENCH "), (52, None, None))
        self.assertEqual(self.hints.last_same_workout_sets(self.b, "bench"), (70, 70, 70))
        self.assertEqual(self.hints.last_same_workout_sets(self.a, "Squat"), (None, None, None))
        self.assertEqual(self.hints.last_same_workout_sets("missing", "Bench"), (None, None, None))

    def test_global_averages_are_per_set(self) -> None:
        self.log(self.a, "2024-01-01T10:00:00", weight("Bench", [40, None, None]))
        self.log(self.b, "2024-01-02T10:00:00", weight("bench", [50, None, None]))
        self.assertEqual(self.hints.global_averages_by_set("Bench"), (45, None, None))

        self.log(self.b, "2024-01-03T10:00:00", weight("Bench ", [60, 30, None]))
        avg1, avg2, avg3 = self.hints.global_averages_by_set("Bench")
        self.assertAlmostEqual(avg1, 50)
        self.assertAlmostEqual(avg2, 30)
        self.assertIsNone(avg3)

    def test_global_last_takes_whole_triple(self) -> None:
        self.log(self.a, "2024-02-01T10:00:00", weight("Bench", [40, 45, 50]))
        self.log(self.b, "2024-03-01T10:00:00", weight("Bench", [42, None, None]))
        self.log(self.a, "2024-01-01T10:00:00", weight("Bench", [30, 30, 30]))
        self.assertEqual(self.hints.global_last_by_set("bench"), (42, None, None))

    def test_stretch_hints(self) -> None:
        self.log(self.a, "2024-01-01T10:00:00", stretch("Calf", 30))
        self.log(self.b, "2024-02-01T10:00:00", stretch("calf", 60))
        self.log(self.a, "2024-03-01T10:00:00", stretch("Calf", None))
        self.assertEqual(self.hints.global_avg_seconds("CALF"), 45)
        # the latest session left the value empty, so the one before wins
        self.assertEqual(self.hints.global_last_seconds("Calf"), 60)

    def test_cardio_hints(self) -> None:
        self.log(self.a, "2024-01-01T10:00:00", cardio("Run", 20), stretch("Run", 99))
        self.log(self.a, "2024-01-05T10:00:00", cardio("Run", 25))
        self.assertAlmostEqual(self.hints.global_avg_minutes("run"), 22.5)
        self.assertEqual(self.hints.global_last_minutes("run"), 25)

    def test_equivalent_names_resolve_identically(self) -> None:
        self.log(self.a, "2024-01-01T10:00:00", weight("Leg Press", [100, 110, 120]))
        self.log(self.a, "2024-01-02T10:00:00", weight("  leg PRESS", [105, None, 125]))
        for name in ("Leg Press", " leg press  ", "LEG PRESS"):
            self.assertEqual(self.hints.global_last_by_set(name), (105, None, 125))
            self.assertEqual(
                self.hints.global_averages_by_set(name), (102.5, 110, 122.5)
            )
            self.assertEqual(
                self.hints.last_same_workout_sets(self.a, name), (105, None, 125)
            )

    def test_hints_reflect_new_sessions(self) -> None:
        self.log(self.a, "2024-01-01T10:00:00", cardio("Run", 10))
        self.assertEqual(self.hints.global_last_minutes("Run"), 10)
        self.log(self.a, "2024-01-02T10:00:00", cardio("Run", 30))
        self.assertEqual(self.hints.global_last_minutes("Run"), 30)

    def test_hints_for_workout(self) -> None:
        self.store.add_exercise(self.a, {"name": "Bench", "type": "PESO"})
        self.store.add_exercise(self.a, {"name": "Calf", "type": "ALONGAMENTO"})
        self.store.add_exercise(self.a, {"name": "Run", "type": "AEROBICO"})
        self.log(
            self.a,
            "2024-01-01T10:00:00",
            weight("Bench", [40, 45, None]),
            stretch("Calf", 30),
            cardio("Run", 15),
        )
        hints = self.hints.hints_for_workout(self.store.get_workout(self.a))
        self.assertEqual(hints["Bench"]["last_same_workout"], (40, 45, None))
        self.assertEqual(hints["Bench"]["global_avg"], (40, 45, None))
        self.assertEqual(hints["Calf"], {"avg": 30, "last": 30})
        self.assertEqual(hints["Run"], {"avg": 15, "last": 15})


if __name__ == "__main__":
    unittest.main()
