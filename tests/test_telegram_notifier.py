# tests/test_telegram_notifier.py

"""Tests for the Telegram notifier."""

import unittest
from unittest.mock import MagicMock, patch

from src.models.errors import NotifyError
from src.notifications.telegram_notifier import TelegramNotifier

POST_PATH = "src.notifications.telegram_notifier.curl_requests.post"


def _ok_response() -> MagicMock:
    resp = MagicMock()
    resp.status_code = 200
    resp.json.return_value = {"ok": True, "result": {"message_id": 1}}
    return resp


class TestTelegramNotifier(unittest.TestCase):
    """Delivery, disabled mode and failure mapping."""

    @patch(POST_PATH)
    def test_disabled_without_token(self, mock_post: MagicMock) -> None:
        """An unconfigured notifier logs and returns without sending."""
        notifier = TelegramNotifier(token="", chat_id="")
        self.assertFalse(notifier.enabled)
        with self.assertLogs("price_watcher.notifier", level="INFO") as logs:
            notifier.notify("hello")
        mock_post.assert_not_called()
        self.assertTrue(any("not sent" in line for line in logs.output))

    @patch(POST_PATH)
    def test_disabled_without_chat_id(self, mock_post: MagicMock) -> None:
        """A token alone is not enough."""
        notifier = TelegramNotifier(token="abc", chat_id="")
        notifier.notify("hello")
        mock_post.assert_not_called()

    @patch(POST_PATH)
    def test_sends_message(self, mock_post: MagicMock) -> None:
        """A configured notifier posts to sendMessage with a timeout."""
        mock_post.return_value = _ok_response()
        notifier = TelegramNotifier(token="abc", chat_id="42", timeout=5)
        notifier.notify("price dropped")

        args, kwargs = mock_post.call_args
        self.assertTrue(args[0].endswith("/botabc/sendMessage"))
        self.assertEqual(kwargs["json"]["chat_id"], "42")
        self.assertEqual(kwargs["json"]["text"], "price dropped")
        self.assertEqual(kwargs["timeout"], 5)

    @patch(POST_PATH)
    def test_transport_error_raises(self, mock_post: MagicMock) -> None:
        """Network failures become NotifyError."""
        mock_post.side_effect = ConnectionError("down")
        notifier = TelegramNotifier(token="abc", chat_id="42")
        with self.assertRaises(NotifyError):
            notifier.notify("x")

    @patch(POST_PATH)
    def test_http_error_raises(self, mock_post: MagicMock) -> None:
        """Non-200 responses become NotifyError."""
        resp = MagicMock()
        resp.status_code = 401
        resp.text = "Unauthorized"
        mock_post.return_value = resp
        notifier = TelegramNotifier(token="abc", chat_id="42")
        with self.assertRaises(NotifyError) as ctx:
            notifier.notify("x")
        self.assertIn("401", str(ctx.exception))

    @patch(POST_PATH)
    def test_api_rejection_raises(self, mock_post: MagicMock) -> None:
        """ok=false in the body becomes NotifyError."""
        resp = _ok_response()
        resp.json.return_value = {"ok": False, "description": "chat not found"}
        mock_post.return_value = resp
        notifier = TelegramNotifier(token="abc", chat_id="42")
        with self.assertRaises(NotifyError) as ctx:
            notifier.notify("x")
        self.assertIn("chat not found", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
