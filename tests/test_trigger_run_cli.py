# tests/test_trigger_run_cli.py
import unittest
from unittest.mock import patch, MagicMock

import requests

from cli.trigger_run import create_schedule_payload, trigger_run
from lambdas.forward_logs.models import Request
from lambdas.forward_logs.trigger import TriggerKind, classify_trigger


class TestTriggerRunCli(unittest.TestCase):

    def test_payload_is_recognised_as_scheduled_run(self):
        payload = create_schedule_payload("nightly")

        self.assertEqual(payload, {"schedule": "nightly", "state": "active"})
        self.assertIs(classify_trigger(Request(body=payload)), TriggerKind.SCHEDULED)

    @patch("cli.trigger_run.requests.post")
    def test_trigger_run_returns_result(self, mock_post):
        mock_post.return_value = MagicMock(**{"json.return_value": {"checkpoint": "cp"}})

        result = trigger_run("https://example.execute-api.us-east-1.amazonaws.com/")

        self.assertEqual(result, {"checkpoint": "cp"})
        self.assertEqual(mock_post.call_args.kwargs["json"]["state"], "active")

    @patch("cli.trigger_run.requests.post")
    def test_trigger_run_reports_failures(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError("refused")

        self.assertIsNone(trigger_run("https://example.execute-api.us-east-1.amazonaws.com/"))

    @patch("cli.trigger_run.requests.post")
    def test_missing_endpoint_does_nothing(self, mock_post):
        self.assertIsNone(trigger_run(None))
        mock_post.assert_not_called()


if __name__ == '__main__':
    unittest.main()
