"""Tests for the notification system."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from grainwatch.lib.alerts import Alert
from grainwatch.lib.config import AlertType, Settings
from grainwatch.lib.config.testing import set_settings
from grainwatch.lib.exceptions import NotificationError
from grainwatch.lib.notifications import (
    CompositeNotifier,
    NoOpNotifier,
    SlackNotifier,
    TelegramNotifier,
    _post_json,
    format_alert_message,
    get_alert_label,
    get_notifier,
)

SLACK_URL = "https://hooks.slack.com/services/T000/B000/XXXX"


def make_alert(frozen_time, alert_type=AlertType.TEMP_HIGH, **overrides):
    """Create an admitted Alert for testing."""
    fields = {
        "id": "a1",
        "device_id": "ESP32_001",
        "type": alert_type,
        "message": "Temperature is too high: 40.0°C",
        "value": 40.0,
        "threshold": 35,
        "created_at": frozen_time,
    }
    fields.update(overrides)
    return Alert(**fields)


def use_telegram(chat_ids="111,222"):
    set_settings(
        Settings(
            _env_file=None,
            enable_notification_service=True,
            notification_backends="telegram",
            telegram_bot_token="123:abc",
            telegram_chat_ids=chat_ids,
        )
    )


class TestFormatting:
    """Tests for message formatting helpers."""

    def test_alert_label(self):
        assert get_alert_label(AlertType.HUMIDITY_LOW) == "HUMIDITY LOW"
        assert get_alert_label("motion") == "MOTION"

    def test_format_alert_message(self, frozen_time):
        message = format_alert_message(make_alert(frozen_time))

        assert "ALERT" in message
        assert "Type: TEMP HIGH" in message
        assert "Message: Temperature is too high: 40.0°C" in message
        assert "Value: 40.0" in message
        assert "Threshold: 35" in message
        assert "Device: ESP32_001" in message
        assert "Time: 2024-06-15 12:00:00" in message


class TestTelegramNotifier:
    """Tests for the Telegram backend."""

    @pytest.mark.asyncio
    async def test_sends_to_every_chat(self, frozen_time):
        use_telegram()
        with patch("grainwatch.lib.notifications._post_json") as post:
            sent = await TelegramNotifier().send(make_alert(frozen_time))

        assert sent is True
        assert post.call_count == 2
        url, payload, timeout = post.call_args_list[0].args
        assert url == "https://api.telegram.org/bot123:abc/sendMessage"
        assert payload["chat_id"] == "111"
        assert payload["parse_mode"] == "Markdown"
        assert "TEMP HIGH" in payload["text"]
        assert timeout == 10
        assert post.call_args_list[1].args[1]["chat_id"] == "222"

    @pytest.mark.asyncio
    async def test_network_error_returns_false(self, frozen_time, caplog):
        use_telegram()
        with patch(
            "grainwatch.lib.notifications._post_json",
            side_effect=OSError("Connection refused"),
        ) as post:
            sent = await TelegramNotifier().send(make_alert(frozen_time))

        assert sent is False
        post.assert_called_once()
        assert "Telegram failed after 1 attempt(s)" in caplog.text

    @pytest.mark.asyncio
    async def test_no_recipients(self, frozen_time, caplog):
        with patch("grainwatch.lib.notifications._post_json") as post:
            sent = await TelegramNotifier().send(make_alert(frozen_time))

        assert sent is False
        post.assert_not_called()
        assert "No Telegram recipients configured" in caplog.text


class TestSlackNotifier:
    """Tests for the Slack backend."""

    def test_payload(self, frozen_time):
        payload = SlackNotifier()._build_payload(make_alert(frozen_time))

        assert payload["text"] == "Temperature is too high: 40.0°C"
        assert payload["blocks"][0]["text"]["text"] == "TEMP HIGH Alert"
        fields = [f["text"] for f in payload["blocks"][1]["fields"]]
        assert "*Device:*\nESP32_001" in fields

    @pytest.mark.asyncio
    async def test_posts_to_webhook(self, frozen_time):
        set_settings(Settings(_env_file=None, slack_webhook_url=SLACK_URL))
        with patch("grainwatch.lib.notifications._post_json") as post:
            sent = await SlackNotifier().send(make_alert(frozen_time))

        assert sent is True
        assert post.call_args.args[0] == SLACK_URL


class TestCompositeNotifier:
    """Tests for the CompositeNotifier class."""

    @pytest.mark.asyncio
    async def test_true_if_any_backend_succeeds(self, frozen_time):
        failing = MagicMock()
        failing.send = AsyncMock(return_value=False)
        working = MagicMock()
        working.send = AsyncMock(return_value=True)

        sent = await CompositeNotifier([failing, working]).send(
            make_alert(frozen_time)
        )

        assert sent is True
        failing.send.assert_awaited_once()
        working.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_backend_exception_is_contained(self, frozen_time, caplog):
        broken = MagicMock()
        broken.send = AsyncMock(side_effect=RuntimeError("boom"))

        sent = await CompositeNotifier([broken]).send(make_alert(frozen_time))

        assert sent is False
        assert "Notification backend failed: boom" in caplog.text


class TestNoOpNotifier:
    """Tests for the NoOpNotifier class."""

    @pytest.mark.asyncio
    async def test_logs_and_returns_false(self, frozen_time, caplog):
        sent = await NoOpNotifier().send(make_alert(frozen_time))

        assert sent is False
        assert "Notifications disabled" in caplog.text


class TestGetNotifier:
    """Tests for the get_notifier factory."""

    def test_disabled_returns_noop(self):
        assert isinstance(get_notifier(), NoOpNotifier)

    def test_telegram(self):
        use_telegram()
        assert isinstance(get_notifier(), TelegramNotifier)

    def test_multiple_backends_return_composite(self):
        set_settings(
            Settings(
                _env_file=None,
                enable_notification_service=True,
                notification_backends="telegram,slack",
                telegram_bot_token="123:abc",
                telegram_chat_ids="111",
                slack_webhook_url=SLACK_URL,
            )
        )
        assert isinstance(get_notifier(), CompositeNotifier)


class TestPostJson:
    """Tests for the HTTP helper."""

    def test_non_2xx_raises(self):
        response = MagicMock(status=302)
        response.__enter__.return_value = response
        with patch("urllib.request.urlopen", return_value=response):
            with pytest.raises(NotificationError, match="302"):
                _post_json("https://example.test/hook", {"text": "x"}, 5)

    def test_success(self):
        response = MagicMock(status=200)
        response.__enter__.return_value = response
        with patch("urllib.request.urlopen", return_value=response) as urlopen:
            _post_json("https://example.test/hook", {"text": "x"}, 5)

        request = urlopen.call_args.args[0]
        assert request.get_method() == "POST"
        assert request.data == b'{"text": "x"}'
        assert urlopen.call_args.kwargs == {"timeout": 5}
