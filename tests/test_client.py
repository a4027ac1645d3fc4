import json
import os
import sys
import unittest
from unittest import mock

import requests

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import BuilderClient


def fake_response(payload, status=200):
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(payload).encode()
    return resp


class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.client = BuilderClient(base_url="http://testserver/")

    def test_create_workout(self) -> None:
        with mock.patch("client.requests.post") as post:
            post.return_value = fake_response({"id": "w1", "name": "A"})
            workout = self.client.create_workout("A")
        self.assertEqual(workout["id"], "w1")
        post.assert_called_once_with(
            "http://testserver/workouts", params={"name": "A"}, timeout=10.0
        )

    def test_log_session_sends_camel_case_body(self) -> None:
        entries = [{"type": "AEROBICO", "exerciseName": "Run", "minutes": 10}]
        with mock.patch("client.requests.post") as post:
            post.return_value = fake_response({"id": "s1", "calories": 60})
            session = self.client.log_session(
                "w1", "2024-01-01T10:00:00Z", "2024-01-01T11:00:00Z", entries
            )
        self.assertEqual(session["calories"], 60)
        body = post.call_args.kwargs["json"]
        self.assertEqual(body["workoutId"], "w1")
        self.assertEqual(body["entries"], entries)

    def test_weight_hints_query(self) -> None:
        with mock.patch("client.requests.get") as get:
            get.return_value = fake_response({"globalAvg": [None, None, None]})
            self.client.weight_hints("Bench", workout_id="w1")
        get.assert_called_once_with(
            "http://testserver/hints/weight",
            params={"exercise": "Bench", "workout_id": "w1"},
            timeout=10.0,
        )

    def test_errors_are_raised(self) -> None:
        with mock.patch("client.requests.get") as get:
            get.return_value = fake_response({"detail": "boom"}, status=500)
            with self.assertRaises(requests.HTTPError):
                self.client.overview(2024)


if __name__ == "__main__":
    unittest.main()
