"""
Test fixtures and sample data for Trivia Quiz Bot tests.
"""
import json
from pathlib import Path
from typing import Dict, List
from unittest.mock import Mock, AsyncMock

from trivia_quiz.models import Question


class FakeTime:
    """Controllable time source for sessions."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestFixtures:
    """Centralized test fixtures for all test modules."""

    @staticmethod
    def create_sample_questions() -> List[Question]:
        """The two-question batch used by the scoring scenarios."""
        return [
            Question(
                text="2+2?",
                category="Math",
                difficulty="easy",
                correct_answer="4",
                incorrect_answers=("3", "5")
            ),
            Question(
                text="Capital of France?",
                category="Geography",
                difficulty="easy",
                correct_answer="Paris",
                incorrect_answers=("Lyon",)
            ),
        ]

    @staticmethod
    def create_question_batch(count: int = 10) -> List[Question]:
        """A batch of generated questions with four answers each."""
        return [
            Question(
                text=f"Question {i}?",
                category="General Knowledge",
                difficulty="medium",
                correct_answer=f"Right {i}",
                incorrect_answers=(f"Wrong {i}a", f"Wrong {i}b", f"Wrong {i}c")
            )
            for i in range(1, count + 1)
        ]

    @staticmethod
    def create_trivia_payload() -> Dict:
        """Open Trivia DB response with HTML-encoded text."""
        return {
            "response_code": 0,
            "results": [
                {
                    "type": "multiple",
                    "difficulty": "easy",
                    "category": "Entertainment: Video Games",
                    "question": "Which company made &quot;Super Mario Bros.&quot;?",
                    "correct_answer": "Nintendo",
                    "incorrect_answers": ["Sega", "Atari", "Capcom"]
                },
                {
                    "type": "boolean",
                    "difficulty": "medium",
                    "category": "Science &amp; Nature",
                    "question": "The sun&#039;s core is hotter than its surface.",
                    "correct_answer": "True",
                    "incorrect_answers": ["False"]
                }
            ]
        }

    @staticmethod
    def write_question_file(temp_dir: str, payload: Dict, name: str = "questions.json") -> Path:
        file_path = Path(temp_dir) / name
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(payload, f)
        return file_path


class MockDiscordObjects:
    """Mock Discord objects for testing bot functionality."""

    @staticmethod
    def create_mock_message(message_id: int = 11111) -> Mock:
        message = Mock()
        message.id = message_id
        message.edit = AsyncMock()
        return message

    @staticmethod
    def create_mock_channel(channel_id: int = 12345, message: Mock = None) -> Mock:
        channel = Mock()
        channel.id = channel_id
        channel.send = AsyncMock(return_value=message or MockDiscordObjects.create_mock_message())
        return channel

    @staticmethod
    def create_mock_interaction(channel_id: int = 12345, message_id: int = 11111) -> Mock:
        interaction = Mock()
        interaction.channel_id = channel_id
        interaction.channel = MockDiscordObjects.create_mock_channel(channel_id)
        interaction.message = Mock()
        interaction.message.id = message_id
        interaction.response = Mock()
        interaction.response.is_done.return_value = False
        interaction.response.send_message = AsyncMock()
        interaction.response.defer = AsyncMock()
        interaction.followup = Mock()
        interaction.followup.send = AsyncMock()
        return interaction
