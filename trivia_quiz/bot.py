import discord
from discord.ext import commands
import logging
import asyncio
from typing import Optional
import os

from .config_manager import ConfigManager
from .quiz_controller import QuizController

logger = logging.getLogger(__name__)


class QuizBot(commands.Bot):
    """Discord bot for running timed trivia quizzes"""

    def __init__(self, config=None):
        # Minimal intents for slash commands and buttons
        intents = discord.Intents.none()
        intents.guilds = True

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,  # Fallback prefix, mainly using slash commands
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}

        self.config_manager: Optional[ConfigManager] = None
        self.quiz_controller: Optional[QuizController] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")

            self.config_manager = ConfigManager()
            if self.app_config:
                self.apply_configuration()

            self.quiz_controller = QuizController(self.config_manager)

            await self.setup_commands()

            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    def apply_configuration(self):
        """Apply settings from the configuration file to the config manager."""
        quiz_config = self.app_config.get('quiz', {})
        errors = self.config_manager.apply_config(quiz_config)
        for error in errors:
            logger.warning(f"Configuration value ignored: {error}")
        logger.info("Configuration applied")

    async def setup_commands(self):
        """Register all slash commands"""

        @self.tree.command(name="help", description="Display available commands and their descriptions")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="trivia", description="Start a trivia quiz in this channel")
        async def trivia_command(interaction: discord.Interaction):
            await self.handle_trivia(interaction)

        @self.tree.command(name="stop", description="Stop the trivia quiz in this channel")
        async def stop_command(interaction: discord.Interaction):
            await self.handle_stop(interaction)

        @self.tree.command(name="status", description="Show quiz settings and progress")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        @self.tree.command(name="set_timer", description="Set the countdown for each question (5-300 seconds)")
        async def set_timer_command(interaction: discord.Interaction, seconds: int):
            await self.handle_set_timer(interaction, seconds)

        @self.tree.command(name="set_questions", description="Set how many questions the next quiz fetches (1-50)")
        async def set_questions_command(interaction: discord.Interaction, number: int):
            await self.handle_set_questions(interaction, number)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Bot is in {len(self.guilds)} guilds")

        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def close(self):
        """Stop every running quiz before disconnecting"""
        if self.quiz_controller is not None:
            await self.quiz_controller.shutdown()
        await super().close()

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        try:
            help_embed = discord.Embed(
                title="Trivia Quiz Commands",
                description="Answer timed multiple-choice questions with the buttons under each question.",
                color=0x00ff00
            )

            help_embed.add_field(
                name="Quiz Commands",
                value=(
                    "`/trivia` - Fetch a fresh batch of questions and start a quiz\n"
                    "`/stop` - Stop the current quiz and show the final score\n"
                    "`/status` - Show settings and the current quiz progress"
                ),
                inline=False
            )

            help_embed.add_field(
                name="Settings Commands",
                value=(
                    "`/set_timer <seconds>` - Countdown for each question (5-300)\n"
                    "`/set_questions <number>` - Questions in the next quiz (1-50)"
                ),
                inline=False
            )

            help_embed.add_field(
                name="Scoring",
                value="Correct answer: +10. Wrong answer or time out: -5.",
                inline=False
            )

            help_embed.add_field(
                name="Current Settings",
                value=f"```\n{self.config_manager.get_settings_summary()}\n```",
                inline=False
            )

            await interaction.response.send_message(embed=help_embed)

        except discord.HTTPException as e:
            logger.error(f"Error in help command: {e}")
            await self.send_error_response(interaction, "Failed to display help information", "Help Error")

    async def handle_trivia(self, interaction: discord.Interaction):
        """Handle /trivia command"""
        channel_id = interaction.channel_id
        try:
            if self.quiz_controller.has_running_quiz(channel_id):
                await self.send_warning_response(
                    interaction,
                    "A quiz is already running here. Use /stop to end it first.",
                    "Quiz In Progress"
                )
                return

            await interaction.response.send_message("Starting a trivia quiz...")
            result = await self.quiz_controller.start_quiz(channel_id, interaction.channel)

            if not result['success']:
                await self.send_error_response(interaction, result['user_message'], "Quiz Start Failed")

        except discord.HTTPException as e:
            logger.error(f"Discord API error in trivia command: {e}")
            await self.send_error_response(interaction, "Failed to start the quiz", "Quiz Start Error")

    async def handle_stop(self, interaction: discord.Interaction):
        """Handle /stop command"""
        try:
            result = await self.quiz_controller.stop_quiz(interaction.channel_id)

            if result['success']:
                embed = discord.Embed(
                    title="Quiz Stopped",
                    description=result['user_message'],
                    color=0xff6600
                )
                session_info = result['session_info']
                if session_info and session_info['total_questions']:
                    embed.add_field(
                        name="Progress",
                        value=(
                            f"Reached question {session_info['revealed_questions']}"
                            f"/{session_info['total_questions']}"
                        ),
                        inline=False
                    )
                await interaction.response.send_message(embed=embed)
            else:
                await self.send_info_response(interaction, result['user_message'], "No Quiz")

        except discord.HTTPException as e:
            logger.error(f"Discord API error in stop command: {e}")
            await self.send_error_response(interaction, "Failed to stop the quiz", "Stop Error")

    async def handle_status(self, interaction: discord.Interaction):
        """Handle /status command"""
        try:
            channel_id = interaction.channel_id
            embed = discord.Embed(
                title="Trivia Quiz Status",
                description=self.quiz_controller.get_session_status_summary(channel_id),
                color=0x6699ff
            )
            embed.add_field(
                name="Settings",
                value=f"```\n{self.config_manager.get_settings_summary()}\n```",
                inline=False
            )

            validation = self.config_manager.validate_settings()
            if not validation['valid']:
                embed.add_field(
                    name="Configuration Issues",
                    value="\n".join(validation['issues']),
                    inline=False
                )

            if not self.quiz_controller.has_running_quiz(channel_id):
                embed.set_footer(text="Use /trivia to start a quiz")

            await interaction.response.send_message(embed=embed, ephemeral=True)

        except discord.HTTPException as e:
            logger.error(f"Error in status command: {e}")
            await self.send_error_response(interaction, "Failed to get quiz status", "Status Error")

    async def handle_set_timer(self, interaction: discord.Interaction, seconds: int):
        """Handle /set_timer command"""
        result = self.config_manager.set_timer_duration(seconds)
        await self._send_setting_result(interaction, result, "Timer Updated", "Invalid Timer")

    async def handle_set_questions(self, interaction: discord.Interaction, number: int):
        """Handle /set_questions command"""
        result = self.config_manager.set_question_count(number)
        await self._send_setting_result(interaction, result, "Question Count Updated", "Invalid Question Count")

    async def _send_setting_result(self, interaction: discord.Interaction, result: dict, ok_title: str, error_title: str):
        try:
            if result['success']:
                embed = discord.Embed(
                    title=ok_title,
                    description=result['user_message'],
                    color=0x00ff00
                )
                embed.set_footer(text="Applies to the next quiz")
                await interaction.response.send_message(embed=embed)
            else:
                await self.send_error_response(interaction, result['user_message'], error_title)
        except discord.HTTPException as e:
            logger.error(f"Failed to send settings response: {e}")

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "Error"):
        """Send formatted error response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0xff0000
            )
            embed.set_footer(text="If this error persists, try using /help for available commands")

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send error response to user")

    async def send_info_response(self, interaction: discord.Interaction, message: str, title: str = "Information"):
        """Send formatted info response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0x6699ff
            )

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send info response to user")

    async def send_warning_response(self, interaction: discord.Interaction, message: str, title: str = "Warning"):
        """Send formatted warning response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0xffaa00
            )

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send warning response to user")


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = QuizBot(config)

    try:
        logger.info("Starting Trivia Quiz Bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()


if __name__ == "__main__":
    asyncio.run(run_bot())
