"""
Discord rendering for trivia quiz sessions.
Turns a SessionProjection into an embed and a button view that forwards player intents.
"""
import discord

from .models import SessionProjection

MAX_LABEL_LENGTH = 80  # Discord button label limit
BUTTONS_PER_ROW = 5
NAVIGATION_ROW = 4

COLOR_OK = 0x00ff00
COLOR_WARNING = 0xff6600
COLOR_DANGER = 0xff0000
COLOR_INFO = 0x6699ff


def _truncate(label: str) -> str:
    if len(label) <= MAX_LABEL_LENGTH:
        return label
    return label[:MAX_LABEL_LENGTH - 1] + "…"


def _countdown_color(remaining_seconds: int) -> int:
    if remaining_seconds > 5:
        return COLOR_OK
    if remaining_seconds > 2:
        return COLOR_WARNING
    return COLOR_DANGER


def build_loading_embed() -> discord.Embed:
    """Embed shown while the question batch is being fetched."""
    return discord.Embed(
        title="Trivia Quiz",
        description="Loading questions...",
        color=COLOR_INFO
    )


def build_error_embed(message: str) -> discord.Embed:
    """Embed shown when the quiz could not be started."""
    embed = discord.Embed(
        title="Trivia Quiz Unavailable",
        description=message,
        color=COLOR_DANGER
    )
    embed.set_footer(text="Use /trivia to try again")
    return embed


def build_quiz_embed(projection: SessionProjection) -> discord.Embed:
    """
    Render the current question, score and countdown.

    Args:
        projection: Current session view state

    Returns:
        Embed describing the question the players are looking at
    """
    if projection.is_loading:
        return build_loading_embed()

    if projection.is_finished:
        color = COLOR_INFO
    elif projection.is_answered:
        color = COLOR_OK if projection.selected_answer == projection.correct_answer else COLOR_DANGER
    else:
        color = _countdown_color(projection.remaining_seconds)

    embed = discord.Embed(
        title=f"Question #{projection.index + 1}: {projection.text}",
        color=color
    )
    embed.add_field(name="Score", value=str(projection.score), inline=True)
    embed.add_field(
        name="Remaining Time",
        value=f"{projection.remaining_seconds} second{'s' if projection.remaining_seconds != 1 else ''}",
        inline=True
    )
    embed.add_field(
        name="Progress",
        value=f"{projection.revealed_count}/{projection.total_questions} revealed",
        inline=True
    )
    embed.add_field(name="Category", value=projection.category or "Unknown", inline=True)
    embed.add_field(name="Difficulty", value=(projection.difficulty or "Unknown").capitalize(), inline=True)

    if projection.is_answered:
        if projection.selected_answer is None:
            outcome = f"Time's up! The answer was **{projection.correct_answer}**"
        elif projection.selected_answer == projection.correct_answer:
            outcome = f"Correct! **{projection.correct_answer}**"
        else:
            outcome = f"Wrong: {projection.selected_answer}. The answer was **{projection.correct_answer}**"
        embed.add_field(name="Result", value=outcome, inline=False)

    if projection.is_finished:
        embed.add_field(
            name="Quiz Complete!",
            value=f"Final score: **{projection.score}**. Use /trivia to play again.",
            inline=False
        )
        embed.set_footer(text="Use Previous to review your answers")
    elif not projection.is_frontier:
        embed.set_footer(text="Reviewing an earlier question")
    elif projection.is_answered:
        embed.set_footer(text="Press Next for the next question")
    else:
        embed.set_footer(text="Pick an answer before time runs out")

    return embed


class AnswerButton(discord.ui.Button):
    """Button for one answer choice."""

    def __init__(self, answer: str, position: int, projection: SessionProjection):
        if not projection.is_answered:
            style = discord.ButtonStyle.secondary
        elif answer == projection.correct_answer:
            style = discord.ButtonStyle.success
        elif answer == projection.selected_answer:
            style = discord.ButtonStyle.danger
        else:
            style = discord.ButtonStyle.secondary

        super().__init__(
            style=style,
            label=_truncate(answer),
            disabled=projection.is_answered or not projection.is_frontier,
            row=position // BUTTONS_PER_ROW
        )
        self.answer = answer

    async def callback(self, interaction: discord.Interaction):
        await self.view.controller.handle_select_answer(interaction, self.answer)


class PreviousButton(discord.ui.Button):
    """Navigates to the previous revealed question."""

    def __init__(self, projection: SessionProjection):
        super().__init__(
            style=discord.ButtonStyle.primary,
            label="Previous",
            disabled=not projection.can_retreat,
            row=NAVIGATION_ROW
        )

    async def callback(self, interaction: discord.Interaction):
        await self.view.controller.handle_retreat(interaction)


class NextButton(discord.ui.Button):
    """Navigates forward or reveals the next question."""

    def __init__(self, projection: SessionProjection):
        super().__init__(
            style=discord.ButtonStyle.primary,
            label="Next",
            disabled=not projection.can_advance,
            row=NAVIGATION_ROW
        )

    async def callback(self, interaction: discord.Interaction):
        await self.view.controller.handle_advance(interaction)


class QuizView(discord.ui.View):
    """Button view for a quiz message. Rebuilt on every render."""

    def __init__(self, controller, projection: SessionProjection):
        """
        Args:
            controller: Object receiving the player intents
            projection: Session view state the buttons reflect
        """
        super().__init__(timeout=None)
        self.controller = controller
        self.projection = projection

        if projection.is_loading:
            return

        for position, answer in enumerate(projection.answer_order):
            self.add_item(AnswerButton(answer, position, projection))
        self.add_item(PreviousButton(projection))
        self.add_item(NextButton(projection))
