"""
Question providers for the Trivia Quiz Bot.
Fetches question batches from Open Trivia DB or a local JSON file and validates them.
"""
import html
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from .models import OPEN_TRIVIA_API_URL, Question

DEFAULT_QUESTION_COUNT = 10

# Open Trivia DB response codes
RESPONSE_CODE_MESSAGES = {
    1: "Not enough questions available for the query",
    2: "Invalid parameter sent to the trivia API",
    3: "Session token not found",
    4: "Session token has returned all possible questions",
    5: "Too many requests, the trivia API is rate limiting",
}

REQUIRED_STRING_FIELDS = ("question", "correct_answer")
OPTIONAL_STRING_FIELDS = ("category", "difficulty")

# Discord allows 25 components per message, two are the navigation buttons
MAX_ANSWER_CHOICES = 23


class QuestionProviderError(Exception):
    """Raised when a question batch cannot be fetched or parsed."""
    pass


def validate_question_record(record: Any) -> bool:
    """
    Validate that a raw record has the expected question structure.

    Expected structure:
    {
        "question": str,
        "correct_answer": str,
        "incorrect_answers": [str, ...],  # At most MAX_ANSWER_CHOICES - 1
        "category": str,    # Optional
        "difficulty": str   # Optional
    }

    Args:
        record: Parsed JSON value to check

    Returns:
        True if the record can be turned into a Question
    """
    if not isinstance(record, dict):
        return False

    for key in REQUIRED_STRING_FIELDS:
        value = record.get(key)
        if not isinstance(value, str) or not value.strip():
            return False

    for key in OPTIONAL_STRING_FIELDS:
        if key in record and not isinstance(record[key], str):
            return False

    incorrect = record.get("incorrect_answers")
    if not isinstance(incorrect, list):
        return False
    if len(incorrect) + 1 > MAX_ANSWER_CHOICES:
        return False
    return all(isinstance(answer, str) for answer in incorrect)


def parse_question_record(record: Dict[str, Any]) -> Question:
    """Turn a validated raw record into a Question, decoding HTML entities."""
    return Question(
        text=html.unescape(record["question"]),
        category=html.unescape(record.get("category", "")),
        difficulty=html.unescape(record.get("difficulty", "")),
        correct_answer=html.unescape(record["correct_answer"]),
        incorrect_answers=tuple(html.unescape(answer) for answer in record["incorrect_answers"]),
    )


def parse_question_payload(payload: Any) -> List[Question]:
    """
    Parse an Open Trivia DB style document into questions.

    Args:
        payload: Decoded JSON document with a "results" list

    Returns:
        Ordered list of questions

    Raises:
        QuestionProviderError: If the document or any record is malformed
    """
    if not isinstance(payload, dict):
        raise QuestionProviderError("Question payload must be a JSON object")

    response_code = payload.get("response_code", 0)
    if response_code != 0:
        message = RESPONSE_CODE_MESSAGES.get(response_code, f"Unknown response code {response_code}")
        raise QuestionProviderError(message)

    results = payload.get("results")
    if not isinstance(results, list):
        raise QuestionProviderError("Question payload is missing the 'results' list")

    questions = []
    for position, record in enumerate(results, start=1):
        if not validate_question_record(record):
            raise QuestionProviderError(f"Question {position} has an invalid structure")
        questions.append(parse_question_record(record))
    return questions


class QuestionProvider(ABC):
    """One-shot source of an ordered batch of questions."""

    @abstractmethod
    async def fetch_questions(self) -> List[Question]:
        """
        Fetch the question batch.

        Raises:
            QuestionProviderError: If the batch cannot be obtained
        """


class OpenTriviaProvider(QuestionProvider):
    """Fetches questions from the Open Trivia DB HTTP API."""

    def __init__(
        self,
        api_url: str = OPEN_TRIVIA_API_URL,
        amount: int = DEFAULT_QUESTION_COUNT,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the provider.

        Args:
            api_url: Endpoint of the trivia API
            amount: Number of questions to request
            timeout: Request timeout in seconds
            client: Optional shared client, a short-lived one is created if None
        """
        self.api_url = api_url
        self.amount = amount
        self.timeout = timeout
        self._client = client
        self.logger = logging.getLogger(__name__)

    async def fetch_questions(self) -> List[Question]:
        try:
            if self._client is not None:
                response = await self._request(self._client)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._request(client)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            self.logger.error(f"Trivia API returned HTTP {e.response.status_code}")
            raise QuestionProviderError(f"Trivia API returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            self.logger.error(f"Failed to reach trivia API at {self.api_url}: {e}")
            raise QuestionProviderError(f"Failed to reach trivia API: {e}") from e
        except ValueError as e:
            self.logger.error(f"Trivia API returned invalid JSON: {e}")
            raise QuestionProviderError("Trivia API returned invalid JSON") from e

        questions = parse_question_payload(payload)
        self.logger.info(f"Fetched {len(questions)} questions from {self.api_url}")
        return questions

    async def _request(self, client: httpx.AsyncClient) -> httpx.Response:
        return await client.get(self.api_url, params={"amount": self.amount}, timeout=self.timeout)


class FileQuestionProvider(QuestionProvider):
    """Loads questions from a local JSON file in the Open Trivia DB format."""

    def __init__(self, file_path: str, amount: Optional[int] = None):
        """
        Initialize the provider.

        Args:
            file_path: Path to the JSON question file
            amount: Optional limit on the number of questions returned
        """
        self.file_path = Path(file_path)
        self.amount = amount
        self.logger = logging.getLogger(__name__)

    async def fetch_questions(self) -> List[Question]:
        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                payload = json.load(f)
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in {self.file_path}: {e}")
            raise QuestionProviderError(f"Invalid JSON in {self.file_path.name}") from e
        except FileNotFoundError as e:
            self.logger.error(f"Question file not found: {self.file_path}")
            raise QuestionProviderError(f"Question file not found: {self.file_path}") from e
        except OSError as e:
            self.logger.error(f"Failed to read question file {self.file_path}: {e}")
            raise QuestionProviderError(f"Failed to read question file: {e}") from e

        questions = parse_question_payload(payload)
        if self.amount is not None:
            questions = questions[:self.amount]
        self.logger.info(f"Loaded {len(questions)} questions from {self.file_path}")
        return questions


def create_provider(settings, client: Optional[httpx.AsyncClient] = None) -> QuestionProvider:
    """Build the provider described by quiz settings."""
    if settings.question_file:
        return FileQuestionProvider(settings.question_file, amount=settings.question_count)
    return OpenTriviaProvider(
        api_url=settings.api_url,
        amount=settings.question_count,
        timeout=settings.request_timeout,
        client=client,
    )
