"""
Unit tests for QuizBot command handlers with mocked Discord API.
"""
import asyncio
import os
import shutil
import tempfile
import unittest
from unittest.mock import Mock, patch

from moviequiz.bot import QuizBot, run_bot
from moviequiz.models import DataLoaded, LoadFailed
from moviequiz.presenter import DiscordQuizPresenter
from moviequiz.question_factory import MovieQuestionFactory
from moviequiz.quiz_session import QuizSession, SessionState
from moviequiz.statistic_service import StatisticService
from moviequiz.storage import InMemoryStorage, JsonFileStorage
from tests.test_fixtures import FakeClock, MockDiscordObjects, TestFixtures


class TestQuizBot(unittest.IsolatedAsyncioTestCase):
    """Test slash command handlers."""

    async def asyncSetUp(self):
        """Set up test fixtures."""
        self.bot = QuizBot()
        self.bot.statistic_service = StatisticService(InMemoryStorage(), clock=FakeClock())
        self.bot.question_factory = Mock(spec=MovieQuestionFactory)
        self.bot.question_factory.is_loaded = False

    async def test_command_prefix_from_config(self):
        """Test the prefix is read from the bot section."""
        bot = QuizBot({'bot': {'command_prefix': '?'}})

        self.assertEqual(bot.command_prefix, '?')

    async def test_setup_hook_wires_components(self):
        """Test setup_hook builds the services from config."""
        temp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, temp_dir, True)
        movies_file = TestFixtures.write_json(temp_dir, "movies.json", TestFixtures.create_valid_movies_json())
        config = {
            'quiz': {
                'questions_amount': 3,
                'movies_file': str(movies_file),
                'statistics_file': os.path.join(temp_dir, "stats.json")
            }
        }
        bot = QuizBot(config)

        await bot.setup_hook()

        self.assertIsInstance(bot.statistic_service, StatisticService)
        self.assertIsInstance(bot.statistic_service.storage, JsonFileStorage)
        self.assertIsInstance(bot.question_factory, MovieQuestionFactory)
        self.assertEqual(bot.config_manager.get_questions_amount(), 3)
        command_names = {command.name for command in bot.tree.get_commands()}
        self.assertEqual(command_names, {"help", "quiz", "stats"})

    async def test_setup_hook_warns_about_missing_movies_file(self):
        """Test setup_hook reports configuration issues."""
        temp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, temp_dir, True)
        config = {
            'quiz': {
                'movies_file': os.path.join(temp_dir, "missing.json"),
                'statistics_file': os.path.join(temp_dir, "stats.json")
            }
        }
        bot = QuizBot(config)

        with self.assertLogs('moviequiz.bot', level='WARNING') as logs:
            await bot.setup_hook()

        self.assertTrue(any("Movies file does not exist" in line for line in logs.output))

    async def test_first_quiz_loads_data(self):
        """Test /quiz creates the session and primes the question source."""
        interaction = MockDiscordObjects.create_mock_interaction(channel_id=1)

        await self.bot.handle_quiz(interaction)

        self.assertIsInstance(self.bot.quiz_session, QuizSession)
        self.assertIsInstance(self.bot.presenter, DiscordQuizPresenter)
        self.assertEqual(self.bot.session_channel_id, 1)
        self.bot.question_factory.set_event_handler.assert_called_once_with(self.bot.quiz_session.handle_event)
        self.bot.question_factory.load_data.assert_called_once()
        interaction.response.send_message.assert_awaited_once()

    async def test_quiz_with_loaded_data_starts_round(self):
        """Test /quiz restarts immediately when movies are already loaded."""
        self.bot.question_factory.is_loaded = True
        interaction = MockDiscordObjects.create_mock_interaction(channel_id=1)

        await self.bot.handle_quiz(interaction)

        self.assertEqual(self.bot.quiz_session.state, SessionState.AWAITING_QUESTION)
        self.bot.question_factory.request_next_question.assert_called_once_with(1)
        self.bot.question_factory.load_data.assert_not_called()

    async def test_quiz_reuses_session_in_new_channel(self):
        """Test a finished session moves to the channel that asked for it."""
        await self.bot.handle_quiz(MockDiscordObjects.create_mock_interaction(channel_id=1))
        session = self.bot.quiz_session
        self.bot.question_factory.is_loaded = True

        session._state = SessionState.ROUND_COMPLETE
        interaction = MockDiscordObjects.create_mock_interaction(channel_id=2)
        await self.bot.handle_quiz(interaction)

        self.assertIs(self.bot.quiz_session, session)
        self.assertIs(self.bot.presenter.channel, interaction.channel)
        self.assertEqual(self.bot.session_channel_id, 2)

    async def test_quiz_after_failed_retry_starts_round(self):
        """Test /quiz recovers a session whose retry also failed."""
        interaction = MockDiscordObjects.create_mock_interaction(channel_id=1)
        await self.bot.handle_quiz(interaction)
        session = self.bot.quiz_session
        factory = self.bot.question_factory

        session.handle_event(LoadFailed(message="Movies file not found"))
        session.restart()
        session.handle_event(LoadFailed(message="Movies file not found", request_id=1))

        await self.bot.handle_quiz(MockDiscordObjects.create_mock_interaction(channel_id=1))
        self.assertEqual(factory.load_data.call_count, 2)
        session.handle_event(DataLoaded(movies_count=3))
        await asyncio.gather(*list(self.bot.presenter._tasks))

        self.assertEqual(factory.request_next_question.call_count, 2)
        factory.request_next_question.assert_called_with(2)
        self.assertEqual(session.state, SessionState.AWAITING_QUESTION)
        self.assertIsNone(session.last_error)

    async def test_session_busy_elsewhere(self):
        """Test the single session is reserved for its channel while running."""
        self.bot.quiz_session = Mock(state=SessionState.AWAITING_ANSWER)
        self.bot.session_channel_id = 1

        self.assertTrue(self.bot.session_busy_elsewhere(2))
        self.assertFalse(self.bot.session_busy_elsewhere(1))

        self.bot.quiz_session.state = SessionState.ROUND_COMPLETE
        self.assertFalse(self.bot.session_busy_elsewhere(2))

    async def test_quiz_rejected_while_busy_elsewhere(self):
        """Test /quiz in another channel is refused ephemerally."""
        self.bot.quiz_session = Mock(state=SessionState.SHOWING_FEEDBACK)
        self.bot.session_channel_id = 1
        interaction = MockDiscordObjects.create_mock_interaction(channel_id=2)

        await self.bot.handle_quiz(interaction)

        kwargs = interaction.response.send_message.call_args.kwargs
        self.assertTrue(kwargs['ephemeral'])
        self.assertEqual(kwargs['embed'].title, "❌ Quiz Busy")
        self.bot.quiz_session.restart.assert_not_called()

    async def test_stats_without_games(self):
        """Test /stats before any round has been played."""
        interaction = MockDiscordObjects.create_mock_interaction()

        await self.bot.handle_stats(interaction)

        embed = interaction.response.send_message.call_args.kwargs['embed']
        values = {field.name: field.value for field in embed.fields}
        self.assertEqual(values["Quizzes played"], "0")
        self.assertEqual(values["Best game"], "none yet")
        self.assertEqual(values["Average accuracy"], "0.00%")

    async def test_stats_after_games(self):
        """Test /stats reports the stored aggregate."""
        self.bot.statistic_service.store(3, 5)
        self.bot.statistic_service.store(4, 5)
        interaction = MockDiscordObjects.create_mock_interaction()

        await self.bot.handle_stats(interaction)

        embed = interaction.response.send_message.call_args.kwargs['embed']
        values = {field.name: field.value for field in embed.fields}
        self.assertEqual(values["Quizzes played"], "2")
        self.assertEqual(values["Best game"], "4/5 (01.03.24 12:01)")
        self.assertEqual(values["Average accuracy"], "70.00%")

    async def test_send_error_response_uses_followup_when_done(self):
        """Test errors after an initial response go through the followup."""
        interaction = MockDiscordObjects.create_mock_interaction()
        interaction.response.is_done.return_value = True

        await self.bot.send_error_response(interaction, "Something failed")

        interaction.followup.send.assert_awaited_once()
        interaction.response.send_message.assert_not_awaited()


class TestRunBot(unittest.IsolatedAsyncioTestCase):
    """Test the bot entry point."""

    async def test_run_bot_without_token(self):
        """Test run_bot refuses to start without a token."""
        with patch.dict(os.environ, {}, clear=True):
            with self.assertLogs('moviequiz.bot', level='ERROR'):
                await run_bot(None, {})


if __name__ == '__main__':
    unittest.main()
