"""
Discord rendering of a quiz session: question cards, answer feedback and alerts.
"""
import asyncio
import logging
from typing import Callable, Optional, Set

import discord

from .errors import InvalidStateError
from .models import AlertModel, QuizResultsViewModel, QuizStepViewModel
from .quiz_session import QuizSession, QuizSessionListener

logger = logging.getLogger(__name__)

COLOR_QUESTION = 0x6699ff
COLOR_CORRECT = 0x00ff00
COLOR_WRONG = 0xff0000
COLOR_RESULTS = 0xffaa00


class AnswerView(discord.ui.View):
    """Yes/No buttons attached to a question card."""

    def __init__(self, presenter: "DiscordQuizPresenter"):
        super().__init__(timeout=None)
        self.presenter = presenter

    @discord.ui.button(label="Yes", style=discord.ButtonStyle.success)
    async def yes_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.presenter.handle_answer(interaction, self, True)

    @discord.ui.button(label="No", style=discord.ButtonStyle.danger)
    async def no_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.presenter.handle_answer(interaction, self, False)

    def disable(self) -> None:
        for item in self.children:
            item.disabled = True


class ActionView(discord.ui.View):
    """Single-button view used by the results and error alerts."""

    def __init__(self, label: str, action: Callable[[], None]):
        super().__init__(timeout=None)
        self.action = action
        button = discord.ui.Button(label=label, style=discord.ButtonStyle.primary)
        button.callback = self.on_click
        self.add_item(button)

    async def on_click(self, interaction: discord.Interaction):
        self.stop()
        await interaction.response.edit_message(view=None)
        self.action()


class DiscordQuizPresenter(QuizSessionListener):
    """
    Renders session updates into a Discord channel.

    Session callbacks are synchronous, so each update is sent from its own
    task on the running loop.
    """

    def __init__(self, channel: discord.abc.Messageable):
        self.channel = channel
        self.session: Optional[QuizSession] = None
        self.question_message: Optional[discord.Message] = None
        self._active_view: Optional[AnswerView] = None
        self._tasks: Set[asyncio.Task] = set()

    def bind(self, session: QuizSession) -> None:
        self.session = session

    # QuizSessionListener

    def show_question(self, step: QuizStepViewModel) -> None:
        self._spawn(self._send_question(step))

    def show_answer_result(self, is_correct: bool) -> None:
        view = self._active_view
        self._active_view = None
        if view is not None:
            view.disable()
        self._spawn(self._highlight_answer(is_correct, view))

    def show_results(self, results: QuizResultsViewModel) -> None:
        embed = discord.Embed(title=results.title, description=results.text, color=COLOR_RESULTS)
        self._spawn(self._send_alert(embed, results.button_text))

    def show_network_error(self, alert: AlertModel) -> None:
        self._active_view = None
        embed = discord.Embed(title=f"❌ {alert.title}", description=alert.message, color=COLOR_WRONG)
        self._spawn(self._send_alert(embed, alert.button_text))

    # Interaction handling

    async def handle_answer(self, interaction: discord.Interaction, view: AnswerView, answer: bool) -> None:
        """Forward a button press to the session if it belongs to the current question."""
        if view is not self._active_view or self.session is None:
            await interaction.response.send_message("⏳ This question is no longer active.", ephemeral=True)
            return

        try:
            self.session.submit_answer(answer)
        except InvalidStateError as e:
            logger.warning(f"Answer rejected: {e}")
            await interaction.response.send_message("⏳ Wait for the next question.", ephemeral=True)
            return

        await interaction.response.defer()

    def restart(self) -> None:
        if self.session is not None:
            self.session.restart()

    # Rendering

    def build_question_embed(self, step: QuizStepViewModel) -> discord.Embed:
        embed = discord.Embed(
            title=f"🎬 Question {step.question_number}",
            description=step.question,
            color=COLOR_QUESTION
        )
        if isinstance(step.image_ref, str) and step.image_ref.startswith(("http://", "https://")):
            embed.set_image(url=step.image_ref)
        embed.set_footer(text="Answer with Yes or No")
        return embed

    async def _send_question(self, step: QuizStepViewModel) -> None:
        view = AnswerView(self)
        self._active_view = view
        try:
            self.question_message = await self.channel.send(embed=self.build_question_embed(step), view=view)
        except discord.HTTPException as e:
            logger.error(f"Failed to send question {step.question_number}: {e}")

    async def _highlight_answer(self, is_correct: bool, view: Optional[AnswerView]) -> None:
        message = self.question_message
        if message is None or not message.embeds:
            return

        embed = message.embeds[0].copy()
        embed.color = COLOR_CORRECT if is_correct else COLOR_WRONG
        embed.add_field(
            name="Result",
            value="✅ Correct!" if is_correct else "❌ Wrong!",
            inline=False
        )
        try:
            await message.edit(embed=embed, view=view)
        except discord.HTTPException as e:
            logger.error(f"Failed to highlight answer: {e}")

    async def _send_alert(self, embed: discord.Embed, button_text: str) -> None:
        try:
            await self.channel.send(embed=embed, view=ActionView(button_text, self.restart))
        except discord.HTTPException as e:
            logger.error(f"Failed to send alert '{embed.title}': {e}")

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
