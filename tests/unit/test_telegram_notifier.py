"""Unit тесты TelegramNotifier (Bot подменён)."""

import pytest
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError
from aiogram.methods import SendMessage

from earn_notifier.notifications import TelegramNotifier


class FakeSession:

    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True


class FakeBot:

    def __init__(self, error=None):
        self.error = error
        self.calls = []
        self.session = FakeSession()

    async def send_message(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error


def api_error(error_class, message):
    return error_class(method=SendMessage(chat_id=1, text='x'), message=message)


@pytest.mark.unit
class TestTelegramNotifier:

    def test_requires_token_or_bot(self):
        with pytest.raises(ValueError):
            TelegramNotifier()

    @pytest.mark.asyncio
    async def test_sends_html(self):
        bot = FakeBot()
        notifier = TelegramNotifier(bot=bot)

        assert await notifier.send_message(42, '<b>New</b>') is True
        assert bot.calls == [{'chat_id': 42, 'text': '<b>New</b>', 'parse_mode': 'HTML'}]
        assert notifier.get_stats()['notifications_sent'] == 1

    @pytest.mark.asyncio
    async def test_blocked_user(self):
        notifier = TelegramNotifier(bot=FakeBot(api_error(TelegramForbiddenError, 'bot was blocked by the user')))

        assert await notifier.send_message(42, 'hi') is False
        assert notifier.get_stats()['users_blocked_bot'] == 1

    @pytest.mark.asyncio
    async def test_bad_request_and_unexpected_errors(self):
        bad_request = TelegramNotifier(bot=FakeBot(api_error(TelegramBadRequest, 'chat not found')))
        network = TelegramNotifier(bot=FakeBot(ConnectionError('reset')))

        assert await bad_request.send_message(42, 'hi') is False
        assert await network.send_message(42, 'hi') is False
        assert bad_request.get_stats()['notifications_failed'] == 1
        assert network.get_stats()['notifications_failed'] == 1

    @pytest.mark.asyncio
    async def test_close(self):
        bot = FakeBot()
        await TelegramNotifier(bot=bot).close()

        assert bot.session.closed
