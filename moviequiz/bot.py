import discord
from discord.ext import commands
import logging
import os
from typing import Optional

from .config_manager import ConfigManager
from .data_manager import MoviesLoader
from .presenter import DiscordQuizPresenter
from .question_factory import MovieQuestionFactory
from .quiz_session import QuizSession, SessionState
from .result_formatter import format_best_game
from .scheduler import AsyncioScheduler
from .statistic_service import StatisticService
from .storage import JsonFileStorage

logger = logging.getLogger(__name__)


class QuizBot(commands.Bot):
    """Discord bot running a single movie quiz session"""

    def __init__(self, config=None):
        intents = discord.Intents.none()
        intents.guilds = True  # Required for slash commands

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}

        self.config_manager = ConfigManager()
        self.statistic_service: Optional[StatisticService] = None
        self.question_factory: Optional[MovieQuestionFactory] = None
        self.quiz_session: Optional[QuizSession] = None
        self.presenter: Optional[DiscordQuizPresenter] = None
        self.session_channel_id: Optional[int] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")

            rejected = self.config_manager.apply_config(self.app_config)
            for message in rejected:
                logger.warning(f"Config value rejected: {message}")

            validation = self.config_manager.validate_settings()
            for issue in validation['issues']:
                logger.warning(f"Configuration issue: {issue}")

            self.statistic_service = StatisticService(
                JsonFileStorage(self.config_manager.get_statistics_file())
            )
            self.question_factory = MovieQuestionFactory(
                MoviesLoader(self.config_manager.get_movies_file())
            )

            self.setup_commands()
            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    def setup_commands(self):
        """Register all slash commands"""
        @self.tree.command(name="help", description="Display available commands")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="quiz", description="Start a new movie quiz round in this channel")
        async def quiz_command(interaction: discord.Interaction):
            await self.handle_quiz(interaction)

        @self.tree.command(name="stats", description="Show games played, best game and accuracy")
        async def stats_command(interaction: discord.Interaction):
            await self.handle_stats(interaction)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    def session_busy_elsewhere(self, channel_id: int) -> bool:
        """True if a round is in progress in a different channel."""
        if self.quiz_session is None or self.session_channel_id == channel_id:
            return False
        return self.quiz_session.state not in (SessionState.IDLE, SessionState.ROUND_COMPLETE)

    async def handle_quiz(self, interaction: discord.Interaction):
        """Handle /quiz command"""
        channel_id = interaction.channel_id

        if self.session_busy_elsewhere(channel_id):
            await self.send_error_response(
                interaction,
                "A quiz round is already running in another channel. Finish it first.",
                "❌ Quiz Busy"
            )
            return

        if self.quiz_session is None:
            self.presenter = DiscordQuizPresenter(interaction.channel)
            self.quiz_session = QuizSession(
                self.question_factory,
                self.statistic_service,
                AsyncioScheduler(),
                self.config_manager.get_quiz_settings(),
                listener=self.presenter
            )
            self.presenter.bind(self.quiz_session)
        else:
            self.presenter.channel = interaction.channel
        self.session_channel_id = channel_id

        embed = discord.Embed(
            title="🎬 Movie Quiz",
            description=(
                f"{self.quiz_session.questions_amount} questions about movie ratings. "
                "Answer each one with Yes or No."
            ),
            color=0x00ff00
        )
        embed.set_footer(text="Loading questions...")
        await interaction.response.send_message(embed=embed)

        if self.question_factory.is_loaded:
            self.quiz_session.restart()
        else:
            self.quiz_session.load_data()

    async def handle_stats(self, interaction: discord.Interaction):
        """Handle /stats command"""
        aggregate = self.statistic_service.aggregate()
        embed = discord.Embed(title="📊 Statistics", color=0x6699ff)
        embed.add_field(name="Quizzes played", value=str(aggregate.games_count), inline=True)
        embed.add_field(name="Best game", value=format_best_game(aggregate.best_game), inline=True)
        embed.add_field(name="Average accuracy", value=f"{aggregate.total_accuracy:.2f}%", inline=True)
        await interaction.response.send_message(embed=embed)

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        help_embed = discord.Embed(
            title="🎬 Movie Quiz Commands",
            color=0x00ff00
        )
        help_embed.add_field(
            name="🎮 Commands",
            value=(
                "`/help` - Show this message\n"
                "`/quiz` - Start a new round in this channel\n"
                "`/stats` - Show your statistics"
            ),
            inline=False
        )
        help_embed.add_field(
            name="⚙️ Current Settings",
            value=f"```\n{self.config_manager.get_settings_summary()}\n```",
            inline=False
        )
        await interaction.response.send_message(embed=help_embed)

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0xff0000
            )
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send error response to user")


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = QuizBot(config)

    try:
        logger.info("Starting Movie Quiz Bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
