"""
Configuration manager for Trivia Quiz Bot settings and parameters.
"""
import logging
from typing import Optional, Dict, Any, List
from pathlib import Path

from .models import OPEN_TRIVIA_API_URL, QuizSettings


class ConfigManager:
    """Manages bot configuration settings and quiz parameters."""

    # Default configuration values
    DEFAULT_QUESTION_COUNT = 10
    DEFAULT_TIMER_DURATION = 15
    DEFAULT_API_URL = OPEN_TRIVIA_API_URL
    DEFAULT_REQUEST_TIMEOUT = 10.0

    # Validation limits
    MIN_TIMER_DURATION = 5
    MAX_TIMER_DURATION = 300  # 5 minutes
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 50  # Open Trivia DB limit per request
    MIN_REQUEST_TIMEOUT = 1.0
    MAX_REQUEST_TIMEOUT = 60.0

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._global_settings = QuizSettings()

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get current quiz settings.

        Returns:
            Copy of the current QuizSettings
        """
        return QuizSettings(
            question_count=self._global_settings.question_count,
            timer_duration=self._global_settings.timer_duration,
            api_url=self._global_settings.api_url,
            question_file=self._global_settings.question_file,
            request_timeout=self._global_settings.request_timeout
        )

    def set_question_count(self, count: int) -> Dict[str, Any]:
        """
        Set the number of questions fetched for each quiz.

        Args:
            count: Number of questions

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        # bool is an int subclass but never a valid count
        if not isinstance(count, int) or isinstance(count, bool):
            error_msg = f"Question count must be an integer, got {type(count).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"Invalid input: Expected a number, got {type(count).__name__}"
            }

        if count < self.MIN_QUESTION_COUNT:
            error_msg = f"Question count must be at least {self.MIN_QUESTION_COUNT}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"Too few questions: Minimum is {self.MIN_QUESTION_COUNT}"
            }

        if count > self.MAX_QUESTION_COUNT:
            error_msg = f"Question count cannot exceed {self.MAX_QUESTION_COUNT}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"Too many questions: Maximum is {self.MAX_QUESTION_COUNT}"
            }

        self._global_settings.question_count = count
        self.logger.info(f"Question count set to {count}")
        return {
            'success': True,
            'message': f"Question count set to {count}",
            'user_message': f"The next quiz will have {count} questions"
        }

    def get_question_count(self) -> int:
        return self._global_settings.question_count

    def set_timer_duration(self, duration: int) -> Dict[str, Any]:
        """
        Set the countdown duration for each question.

        Args:
            duration: Timer duration in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(duration, int) or isinstance(duration, bool):
            error_msg = f"Timer duration must be an integer, got {type(duration).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"Invalid input: Expected a number, got {type(duration).__name__}"
            }

        if duration < self.MIN_TIMER_DURATION:
            error_msg = f"Timer duration must be at least {self.MIN_TIMER_DURATION} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"Timer too short: Minimum is {self.MIN_TIMER_DURATION} seconds"
            }

        if duration > self.MAX_TIMER_DURATION:
            error_msg = f"Timer duration cannot exceed {self.MAX_TIMER_DURATION} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': (
                    f"Timer too long: Maximum is {self.MAX_TIMER_DURATION} seconds "
                    f"({self.MAX_TIMER_DURATION // 60} minutes)"
                )
            }

        self._global_settings.timer_duration = duration
        self.logger.info(f"Timer duration set to {duration} seconds")
        return {
            'success': True,
            'message': f"Timer duration set to {duration} seconds",
            'user_message': f"Each question now gets {duration} seconds"
        }

    def get_timer_duration(self) -> int:
        return self._global_settings.timer_duration

    def set_api_url(self, api_url: str) -> Dict[str, Any]:
        """
        Set the trivia API endpoint.

        Args:
            api_url: HTTP(S) URL of an Open Trivia DB compatible endpoint

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(api_url, str) or not api_url.strip():
            error_msg = "API URL must be a non-empty string"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "Invalid input: API URL cannot be empty"
            }

        if not api_url.startswith(("http://", "https://")):
            error_msg = f"API URL must use http or https: {api_url}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"Invalid API URL: {api_url}"
            }

        self._global_settings.api_url = api_url
        self.logger.info(f"Trivia API URL set to {api_url}")
        return {
            'success': True,
            'message': f"Trivia API URL set to {api_url}",
            'user_message': f"Questions will be fetched from {api_url}"
        }

    def get_api_url(self) -> str:
        return self._global_settings.api_url

    def set_question_file(self, file_path: Optional[str]) -> Dict[str, Any]:
        """
        Set a local question file to use instead of the trivia API.

        Args:
            file_path: Path to a JSON question file, or None to use the API

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if file_path is None:
            self._global_settings.question_file = None
            self.logger.info("Question source set to trivia API")
            return {
                'success': True,
                'message': "Question source set to trivia API",
                'user_message': "Questions will be fetched from the trivia API"
            }

        if not isinstance(file_path, str) or not file_path.strip():
            error_msg = "Question file must be a non-empty path string"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "Invalid input: Question file path cannot be empty"
            }

        try:
            normalized_path = str(Path(file_path).resolve())
        except (OSError, ValueError) as e:
            error_msg = f"Invalid question file path: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"Invalid path format: {file_path}"
            }

        self._global_settings.question_file = normalized_path
        self.logger.info(f"Question file set to {normalized_path}")
        return {
            'success': True,
            'message': f"Question file set to {normalized_path}",
            'user_message': f"Questions will be loaded from {normalized_path}"
        }

    def get_question_file(self) -> Optional[str]:
        return self._global_settings.question_file

    def set_request_timeout(self, timeout: float) -> Dict[str, Any]:
        """
        Set the HTTP request timeout used when fetching questions.

        Args:
            timeout: Timeout in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool):
            error_msg = f"Request timeout must be a number, got {type(timeout).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"Invalid input: Expected a number, got {type(timeout).__name__}"
            }

        if not self.MIN_REQUEST_TIMEOUT <= timeout <= self.MAX_REQUEST_TIMEOUT:
            error_msg = (
                f"Request timeout must be between {self.MIN_REQUEST_TIMEOUT} "
                f"and {self.MAX_REQUEST_TIMEOUT} seconds"
            )
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': error_msg
            }

        self._global_settings.request_timeout = float(timeout)
        self.logger.info(f"Request timeout set to {timeout} seconds")
        return {
            'success': True,
            'message': f"Request timeout set to {timeout} seconds",
            'user_message': f"Question requests time out after {timeout} seconds"
        }

    def apply_config(self, quiz_config: Dict[str, Any]) -> List[str]:
        """
        Apply the "quiz" section of config.json.

        Invalid values are logged and skipped, keeping the current setting.

        Args:
            quiz_config: Mapping read from the configuration file

        Returns:
            List of error messages for values that were rejected
        """
        errors = []
        setters = (
            ('question_count', self.set_question_count),
            ('timer_duration', self.set_timer_duration),
            ('api_url', self.set_api_url),
            ('request_timeout', self.set_request_timeout),
        )
        for key, setter in setters:
            if key in quiz_config:
                result = setter(quiz_config[key])
                if not result['success']:
                    errors.append(result['error'])

        if 'question_file' in quiz_config:
            result = self.set_question_file(quiz_config['question_file'])
            if not result['success']:
                errors.append(result['error'])

        if errors:
            self.logger.warning(f"Ignored {len(errors)} invalid configuration values")
        return errors

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._global_settings = QuizSettings(
            question_count=self.DEFAULT_QUESTION_COUNT,
            timer_duration=self.DEFAULT_TIMER_DURATION,
            api_url=self.DEFAULT_API_URL,
            question_file=None,
            request_timeout=self.DEFAULT_REQUEST_TIMEOUT
        )
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }

        count = self._global_settings.question_count
        if (not isinstance(count, int) or
                count < self.MIN_QUESTION_COUNT or
                count > self.MAX_QUESTION_COUNT):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid question count: {count}")

        duration = self._global_settings.timer_duration
        if (not isinstance(duration, int) or
                duration < self.MIN_TIMER_DURATION or
                duration > self.MAX_TIMER_DURATION):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid timer duration: {duration}")

        api_url = self._global_settings.api_url
        if not isinstance(api_url, str) or not api_url.startswith(("http://", "https://")):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid API URL: {api_url}")

        question_file = self._global_settings.question_file
        if question_file is not None and not Path(question_file).is_file():
            validation_result["valid"] = False
            validation_result["issues"].append(f"Question file not found: {question_file}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        source = self._global_settings.question_file or self._global_settings.api_url
        return (
            f"Quiz Settings:\n"
            f"• Questions: {self._global_settings.question_count}\n"
            f"• Timer: {self._global_settings.timer_duration} seconds\n"
            f"• Source: {source}"
        )
