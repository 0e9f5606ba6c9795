"""
Unit tests for the Discord presenter with mocked Discord API objects.
"""
import asyncio
import unittest
from unittest.mock import Mock

from moviequiz.errors import InvalidStateError
from moviequiz.models import AlertModel, QuizResultsViewModel, QuizStepViewModel
from moviequiz.presenter import (
    COLOR_CORRECT, COLOR_RESULTS, COLOR_WRONG, ActionView, AnswerView, DiscordQuizPresenter
)
from moviequiz.quiz_session import QuizSession
from tests.test_fixtures import MockDiscordObjects


class TestDiscordQuizPresenter(unittest.IsolatedAsyncioTestCase):
    """Test presenter rendering and answer forwarding."""

    async def asyncSetUp(self):
        """Set up test fixtures."""
        self.channel = MockDiscordObjects.create_mock_channel()
        self.presenter = DiscordQuizPresenter(self.channel)
        self.session = Mock(spec=QuizSession)
        self.presenter.bind(self.session)
        self.step = QuizStepViewModel(
            image_ref="posters/the_godfather.jpg",
            question="Is the rating of this movie greater than 7?",
            question_number="1/10"
        )

    async def drain(self):
        """Wait for every update the presenter spawned."""
        await asyncio.gather(*list(self.presenter._tasks))

    async def test_show_question_sends_answer_view(self):
        """Test a question card is sent with Yes/No buttons."""
        self.presenter.show_question(self.step)
        await self.drain()

        self.channel.send.assert_awaited_once()
        kwargs = self.channel.send.call_args.kwargs
        self.assertIsInstance(kwargs['view'], AnswerView)
        self.assertEqual(kwargs['embed'].title, "🎬 Question 1/10")
        self.assertEqual(kwargs['embed'].description, self.step.question)
        self.assertIs(self.presenter._active_view, kwargs['view'])
        self.assertIsNotNone(self.presenter.question_message)

    async def test_question_embed_image_only_for_urls(self):
        """Test only http(s) references become embed images."""
        embed = self.presenter.build_question_embed(self.step)
        self.assertIsNone(embed.image.url)

        remote = QuizStepViewModel("https://example.com/poster.jpg", "Question?", "2/10")
        embed = self.presenter.build_question_embed(remote)
        self.assertEqual(embed.image.url, "https://example.com/poster.jpg")

    async def test_answer_result_highlights_card(self):
        """Test feedback recolours the question card and disables its buttons."""
        self.presenter.show_question(self.step)
        await self.drain()
        view = self.presenter._active_view

        self.presenter.show_answer_result(True)
        await self.drain()

        self.assertIsNone(self.presenter._active_view)
        self.assertTrue(all(item.disabled for item in view.children))
        message = self.presenter.question_message
        message.edit.assert_awaited_once()
        embed = message.edit.call_args.kwargs['embed']
        self.assertEqual(embed.color.value, COLOR_CORRECT)
        self.assertEqual(embed.fields[-1].value, "✅ Correct!")

    async def test_wrong_answer_is_red(self):
        """Test a wrong answer uses the failure colour."""
        self.presenter.show_question(self.step)
        await self.drain()

        self.presenter.show_answer_result(False)
        await self.drain()

        embed = self.presenter.question_message.edit.call_args.kwargs['embed']
        self.assertEqual(embed.color.value, COLOR_WRONG)
        self.assertEqual(embed.fields[-1].value, "❌ Wrong!")

    async def test_show_results_sends_play_again(self):
        """Test the round summary is sent with a restart button."""
        results = QuizResultsViewModel("This round is over!", "Your result: 7/10", "Play again")

        self.presenter.show_results(results)
        await self.drain()

        kwargs = self.channel.send.call_args.kwargs
        self.assertEqual(kwargs['embed'].title, "This round is over!")
        self.assertEqual(kwargs['embed'].color.value, COLOR_RESULTS)
        self.assertIsInstance(kwargs['view'], ActionView)
        self.assertEqual(kwargs['view'].children[0].label, "Play again")

    async def test_show_network_error_sends_retry(self):
        """Test a source failure is shown with a retry button."""
        self.presenter.show_network_error(AlertModel("Error", "Movies file not found", "Try again"))
        await self.drain()

        kwargs = self.channel.send.call_args.kwargs
        self.assertEqual(kwargs['embed'].description, "Movies file not found")
        self.assertEqual(kwargs['view'].children[0].label, "Try again")

    async def test_action_button_restarts_session(self):
        """Test pressing the alert button removes it and restarts the round."""
        view = ActionView("Play again", self.presenter.restart)
        interaction = MockDiscordObjects.create_mock_interaction()

        await view.on_click(interaction)

        interaction.response.edit_message.assert_awaited_once_with(view=None)
        self.session.restart.assert_called_once()
        self.assertTrue(view.is_finished())

    async def test_handle_answer_forwards_to_session(self):
        """Test a press on the active card is submitted and acknowledged."""
        view = AnswerView(self.presenter)
        self.presenter._active_view = view
        interaction = MockDiscordObjects.create_mock_interaction()

        await self.presenter.handle_answer(interaction, view, True)

        self.session.submit_answer.assert_called_once_with(True)
        interaction.response.defer.assert_awaited_once()

    async def test_handle_answer_on_stale_card(self):
        """Test presses on an old card are rejected ephemerally."""
        self.presenter._active_view = AnswerView(self.presenter)
        interaction = MockDiscordObjects.create_mock_interaction()

        await self.presenter.handle_answer(interaction, AnswerView(self.presenter), False)

        self.session.submit_answer.assert_not_called()
        self.assertTrue(interaction.response.send_message.call_args.kwargs['ephemeral'])

    async def test_handle_answer_rejected_by_session(self):
        """Test an answer the session refuses is reported to the player."""
        view = AnswerView(self.presenter)
        self.presenter._active_view = view
        self.session.submit_answer.side_effect = InvalidStateError("No question to answer")
        interaction = MockDiscordObjects.create_mock_interaction()

        await self.presenter.handle_answer(interaction, view, True)

        interaction.response.defer.assert_not_awaited()
        interaction.response.send_message.assert_awaited_once()


if __name__ == '__main__':
    unittest.main()
