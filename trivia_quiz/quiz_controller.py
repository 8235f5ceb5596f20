"""
Quiz controller for the Trivia Quiz Bot.
Composes the question provider, quiz session, countdown clock and Discord view per channel.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

import discord

from .config_manager import ConfigManager
from .question_provider import QuestionProvider, QuestionProviderError, create_provider
from .quiz_session import EmptyQuestionSetError, QuizSession
from .quiz_view import QuizView, build_error_embed, build_loading_embed, build_quiz_embed
from .session_clock import SessionClock


class SessionState(Enum):
    """Enumeration of possible channel quiz states."""
    INACTIVE = "inactive"
    LOADING = "loading"
    ACTIVE = "active"
    FINISHED = "finished"
    ERROR = "error"


class QuizControllerError(Exception):
    """Base exception for quiz controller errors."""
    pass


class SessionConflictError(QuizControllerError):
    """Raised when attempting to start a quiz while one is still running in the channel."""
    pass


class SessionNotFoundError(QuizControllerError):
    """Raised when attempting to operate on a channel without a quiz."""
    pass


@dataclass
class ChannelQuiz:
    """A quiz mounted in one Discord channel."""
    channel_id: int
    session: QuizSession
    state: SessionState = SessionState.LOADING
    started_at: datetime = field(default_factory=datetime.now)
    clock: Optional[SessionClock] = None
    message: Optional[discord.Message] = None
    view: Optional[QuizView] = None
    error: Optional[str] = None


class QuizController:
    """
    Orchestrates trivia quizzes across Discord channels.

    Each channel holds at most one quiz. The controller runs the one-shot
    question fetch, wires the countdown clock to the session, routes button
    intents into session operations and re-renders the quiz message after
    every mutation.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        provider_factory: Callable[..., QuestionProvider] = create_provider,
        tick_interval: float = 1.0,
        time_source: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the quiz controller.

        Args:
            config_manager: Instance for managing configuration
            provider_factory: Builds a question provider from QuizSettings
            tick_interval: Seconds between countdown ticks
            time_source: Clock used by the sessions
        """
        self.logger = logging.getLogger(__name__)
        self.config_manager = config_manager
        self._provider_factory = provider_factory
        self._tick_interval = tick_interval
        self._time_source = time_source

        # Quizzes mapped by channel ID
        self._quizzes: Dict[int, ChannelQuiz] = {}

        self.logger.info("QuizController initialized")

    def get_quiz(self, channel_id: int) -> Optional[ChannelQuiz]:
        return self._quizzes.get(channel_id)

    def get_session_state(self, channel_id: int) -> SessionState:
        quiz = self._quizzes.get(channel_id)
        if quiz is None:
            return SessionState.INACTIVE
        return quiz.state

    def has_running_quiz(self, channel_id: int) -> bool:
        return self.get_session_state(channel_id) in (SessionState.LOADING, SessionState.ACTIVE)

    def _require_quiz(self, channel_id: int) -> ChannelQuiz:
        quiz = self._quizzes.get(channel_id)
        if quiz is None:
            raise SessionNotFoundError(f"No quiz in channel {channel_id}")
        return quiz

    async def start_quiz(self, channel_id: int, channel: discord.abc.Messageable) -> Dict[str, Any]:
        """
        Fetch questions and start a quiz in a channel.

        Args:
            channel_id: Discord channel identifier
            channel: Channel the quiz message is posted to

        Returns:
            Dictionary with success status, messages and session info
        """
        try:
            if self.has_running_quiz(channel_id):
                raise SessionConflictError(f"A quiz is already running in channel {channel_id}")
        except SessionConflictError as e:
            self.logger.warning(str(e))
            return {
                'success': False,
                'error': str(e),
                'user_message': "A quiz is already running here. Use /stop to end it first."
            }

        # A finished or failed quiz is replaced
        self._teardown(channel_id)

        settings = self.config_manager.get_quiz_settings()
        session = QuizSession(settings.timer_duration, time_source=self._time_source)
        quiz = ChannelQuiz(channel_id=channel_id, session=session)
        self._quizzes[channel_id] = quiz

        try:
            quiz.message = await channel.send(embed=build_loading_embed())
        except discord.HTTPException as e:
            self.logger.error(f"Failed to post quiz message in channel {channel_id}: {e}")
            self._teardown(channel_id)
            return {
                'success': False,
                'error': str(e),
                'user_message': "Could not post the quiz message in this channel."
            }

        provider = self._provider_factory(settings)
        fetch_error = None
        questions = []
        try:
            questions = await provider.fetch_questions()
        except QuestionProviderError as e:
            fetch_error = e

        # A quiz stopped during the fetch is detached whatever the fetch returned
        if self._quizzes.get(channel_id) is not quiz:
            self.logger.info(f"Quiz in channel {channel_id} was stopped while loading")
            return {
                'success': False,
                'error': "Quiz stopped while loading",
                'user_message': "The quiz was stopped before it started."
            }

        if fetch_error is not None:
            return await self._fail_quiz(quiz, f"Could not load questions: {fetch_error}")

        try:
            session.reveal_first(questions)
        except EmptyQuestionSetError as e:
            return await self._fail_quiz(quiz, f"Could not start the quiz: {e}")

        quiz.state = SessionState.ACTIVE
        quiz.clock = SessionClock(
            session,
            on_tick=lambda remaining: self._render(quiz),
            on_expire=lambda: self._render(quiz),
            tick_interval=self._tick_interval,
            channel_id=channel_id
        )
        quiz.clock.start()
        await self._render(quiz)

        self.logger.info(f"Started quiz in channel {channel_id} with {session.total_questions} questions")
        return {
            'success': True,
            'message': f"Quiz started with {session.total_questions} questions",
            'user_message': f"Quiz started! {session.total_questions} questions, "
                            f"{settings.timer_duration} seconds each.",
            'session_info': self.get_session_progress(channel_id)
        }

    async def stop_quiz(self, channel_id: int) -> Dict[str, Any]:
        """
        Stop the quiz in a channel, cancelling its clock.

        Args:
            channel_id: Discord channel identifier

        Returns:
            Dictionary with success status, messages and the final progress
        """
        try:
            quiz = self._require_quiz(channel_id)
        except SessionNotFoundError as e:
            return {
                'success': False,
                'error': str(e),
                'user_message': "There is no quiz in this channel. Use /trivia to start one."
            }

        session_info = self.get_session_progress(channel_id)
        self._teardown(channel_id)

        if quiz.message is not None and quiz.session.is_loaded:
            embed = build_quiz_embed(quiz.session.current_projection())
            embed.set_footer(text=f"Quiz stopped. Final score: {quiz.session.score}")
            try:
                await quiz.message.edit(embed=embed, view=None)
            except discord.HTTPException as e:
                self.logger.error(f"Failed to update stopped quiz message in channel {channel_id}: {e}")

        self.logger.info(f"Stopped quiz in channel {channel_id}")
        return {
            'success': True,
            'message': f"Quiz stopped in channel {channel_id}",
            'user_message': f"Quiz stopped. Final score: {quiz.session.score}",
            'session_info': session_info
        }

    async def shutdown(self) -> None:
        """Stop every quiz. Called when the bot closes."""
        for channel_id in list(self._quizzes):
            self._teardown(channel_id)
        self.logger.info("All quizzes stopped")

    def get_session_progress(self, channel_id: int) -> Optional[Dict[str, Any]]:
        """
        Get progress information for a channel's quiz.

        Returns:
            Dictionary with progress details, or None if the channel has no quiz
        """
        quiz = self._quizzes.get(channel_id)
        if quiz is None:
            return None

        session = quiz.session
        return {
            'state': quiz.state.value,
            'current_question': session.current_index + 1 if session.is_loaded else 0,
            'revealed_questions': len(session.revealed),
            'total_questions': session.total_questions,
            'score': session.score,
            'remaining_seconds': session.remaining_seconds(),
            'timer_duration': session.timer_duration,
            'started_at': quiz.started_at.isoformat(),
            'error': quiz.error
        }

    def get_session_status_summary(self, channel_id: int) -> str:
        """Human-readable status line for a channel's quiz."""
        progress = self.get_session_progress(channel_id)
        if progress is None:
            return "No quiz in this channel"
        if progress['state'] == SessionState.ERROR.value:
            return f"Quiz failed to start: {progress['error']}"
        if progress['state'] == SessionState.LOADING.value:
            return "Loading questions..."
        return (
            f"Status: {progress['state'].capitalize()} | "
            f"Question {progress['current_question']}/{progress['total_questions']} | "
            f"Score: {progress['score']} | "
            f"Time left: {progress['remaining_seconds']}s"
        )

    # Player intents

    async def handle_select_answer(self, interaction: discord.Interaction, value: str) -> None:
        quiz = await self._quiz_for_interaction(interaction)
        if quiz is None:
            return
        await interaction.response.defer()
        try:
            recorded = quiz.session.select_answer(value)
        except ValueError as e:
            self.logger.warning(f"Rejected answer in channel {quiz.channel_id}: {e}")
            return
        if recorded:
            await self._render(quiz)

    async def handle_advance(self, interaction: discord.Interaction) -> None:
        quiz = await self._quiz_for_interaction(interaction)
        if quiz is None:
            return
        await interaction.response.defer()
        if quiz.session.advance():
            await self._render(quiz)

    async def handle_retreat(self, interaction: discord.Interaction) -> None:
        quiz = await self._quiz_for_interaction(interaction)
        if quiz is None:
            return
        await interaction.response.defer()
        if quiz.session.retreat():
            await self._render(quiz)

    async def _quiz_for_interaction(self, interaction: discord.Interaction) -> Optional[ChannelQuiz]:
        quiz = self._quizzes.get(interaction.channel_id)
        is_current_message = (
            quiz is not None
            and quiz.message is not None
            and interaction.message is not None
            and interaction.message.id == quiz.message.id
        )
        if quiz is None or quiz.session.is_disposed or not quiz.session.is_loaded or not is_current_message:
            self.logger.debug(f"Ignoring intent for inactive quiz in channel {interaction.channel_id}")
            try:
                await interaction.response.send_message(
                    "This quiz is no longer active. Use /trivia to start a new one.",
                    ephemeral=True
                )
            except discord.HTTPException as e:
                self.logger.error(f"Failed to send inactive quiz notice: {e}")
            return None
        return quiz

    # Rendering and teardown

    async def _render(self, quiz: ChannelQuiz) -> None:
        if quiz.message is None or quiz.session.is_disposed:
            return

        projection = quiz.session.current_projection()
        if projection.is_finished and quiz.state == SessionState.ACTIVE:
            quiz.state = SessionState.FINISHED
            if quiz.clock is not None:
                quiz.clock.stop()
            self.logger.info(f"Quiz finished in channel {quiz.channel_id} with score {projection.score}")

        # The previous view leaves the client view store once stopped
        if quiz.view is not None:
            quiz.view.stop()
        quiz.view = QuizView(self, projection)
        try:
            await quiz.message.edit(embed=build_quiz_embed(projection), view=quiz.view)
        except discord.HTTPException as e:
            self.logger.error(f"Failed to render quiz in channel {quiz.channel_id}: {e}")

    async def _fail_quiz(self, quiz: ChannelQuiz, message: str) -> Dict[str, Any]:
        quiz.state = SessionState.ERROR
        quiz.error = message
        self.logger.error(f"Quiz failed in channel {quiz.channel_id}: {message}")
        if quiz.message is not None:
            try:
                await quiz.message.edit(embed=build_error_embed(message), view=None)
            except discord.HTTPException as e:
                self.logger.error(f"Failed to render quiz error in channel {quiz.channel_id}: {e}")
        return {
            'success': False,
            'error': message,
            'user_message': message
        }

    def _teardown(self, channel_id: int) -> None:
        quiz = self._quizzes.pop(channel_id, None)
        if quiz is None:
            return
        if quiz.clock is not None:
            quiz.clock.stop()
        if quiz.view is not None:
            quiz.view.stop()
        quiz.session.dispose()
        self.logger.debug(f"Torn down quiz in channel {channel_id}")
