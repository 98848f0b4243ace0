"""Unit tests for KeyboardInputHandler."""

import pytest
from unittest.mock import Mock

from speak2me.ui.keyboard_input import KeyboardInputHandler


def scripted_keys(*keys):
    pending = list(keys)

    def read_key():
        return pending.pop(0) if pending else None

    return read_key


@pytest.mark.unit
class TestKeyboardInputHandler:
    """Test cases for key polling with a scripted reader."""

    def test_keys_forwarded_lowercase_until_callback_quits(self):
        seen = []

        def on_key(key):
            seen.append(key)
            return key != "q"

        handler = KeyboardInputHandler(on_key)
        handler.read_key = scripted_keys("1", None, "2", "Q", "3")

        handler.start()
        handler.thread.join(timeout=1.0)

        assert seen == ["1", "2", "q"]
        assert handler.running is False

    def test_stop_ends_polling(self):
        callback = Mock(return_value=True)
        handler = KeyboardInputHandler(callback)
        handler.read_key = scripted_keys()

        handler.start()
        assert handler.running is True

        handler.stop()

        assert not handler.thread.is_alive()
        callback.assert_not_called()
