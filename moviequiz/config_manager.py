"""
Configuration manager for movie quiz settings and file locations.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import QuizSettings


class ConfigManager:
    """Manages quiz settings and the locations of data files."""

    # Default configuration values
    DEFAULT_QUESTIONS_AMOUNT = 10
    DEFAULT_FEEDBACK_DELAY = 1.0
    DEFAULT_MOVIES_FILE = "./data/movies.json"
    DEFAULT_STATISTICS_FILE = "./data/statistics.json"

    # Validation limits
    MIN_QUESTIONS_AMOUNT = 1
    MAX_QUESTIONS_AMOUNT = 100
    MIN_FEEDBACK_DELAY = 0.0
    MAX_FEEDBACK_DELAY = 10.0

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = QuizSettings(
            questions_amount=self.DEFAULT_QUESTIONS_AMOUNT,
            feedback_delay=self.DEFAULT_FEEDBACK_DELAY
        )
        self._movies_file = self.DEFAULT_MOVIES_FILE
        self._statistics_file = self.DEFAULT_STATISTICS_FILE

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get current quiz settings.

        Returns:
            A copy of the current QuizSettings
        """
        return QuizSettings(
            questions_amount=self._settings.questions_amount,
            feedback_delay=self._settings.feedback_delay
        )

    def set_questions_amount(self, amount: int) -> Dict[str, Any]:
        """
        Set the number of questions per round.

        Args:
            amount: Number of questions

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(amount, bool) or not isinstance(amount, int):
            error_msg = f"Questions amount must be an integer, got {type(amount).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(amount).__name__}"
            }

        if amount < self.MIN_QUESTIONS_AMOUNT:
            error_msg = f"Questions amount must be at least {self.MIN_QUESTIONS_AMOUNT}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too few questions: Minimum is {self.MIN_QUESTIONS_AMOUNT}"
            }

        if amount > self.MAX_QUESTIONS_AMOUNT:
            error_msg = f"Questions amount cannot exceed {self.MAX_QUESTIONS_AMOUNT}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too many questions: Maximum is {self.MAX_QUESTIONS_AMOUNT}"
            }

        self._settings.questions_amount = amount
        self.logger.info(f"Questions amount set to {amount}")
        return {
            'success': True,
            'message': f"Questions amount set to {amount}",
            'user_message': f"✅ Rounds will have {amount} questions"
        }

    def get_questions_amount(self) -> int:
        return self._settings.questions_amount

    def set_feedback_delay(self, delay: float) -> Dict[str, Any]:
        """
        Set how long the answer feedback stays visible before advancing.

        Args:
            delay: Delay in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(delay, bool) or not isinstance(delay, (int, float)):
            error_msg = f"Feedback delay must be a number, got {type(delay).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(delay).__name__}"
            }

        if delay < self.MIN_FEEDBACK_DELAY or delay > self.MAX_FEEDBACK_DELAY:
            error_msg = (
                f"Feedback delay must be between {self.MIN_FEEDBACK_DELAY} "
                f"and {self.MAX_FEEDBACK_DELAY} seconds"
            )
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': (
                    f"❌ Feedback delay out of range: use {self.MIN_FEEDBACK_DELAY:g}"
                    f"-{self.MAX_FEEDBACK_DELAY:g} seconds"
                )
            }

        self._settings.feedback_delay = float(delay)
        self.logger.info(f"Feedback delay set to {delay} seconds")
        return {
            'success': True,
            'message': f"Feedback delay set to {delay} seconds",
            'user_message': f"✅ Feedback shown for {delay:g} seconds"
        }

    def get_feedback_delay(self) -> float:
        return self._settings.feedback_delay

    def set_movies_file(self, path: str) -> Dict[str, Any]:
        """Set the JSON file questions are generated from."""
        return self._set_path('_movies_file', "Movies file", path)

    def get_movies_file(self) -> str:
        return self._movies_file

    def set_statistics_file(self, path: str) -> Dict[str, Any]:
        """Set the JSON file statistics are persisted to."""
        return self._set_path('_statistics_file', "Statistics file", path)

    def get_statistics_file(self) -> str:
        return self._statistics_file

    def _set_path(self, attribute: str, label: str, path: str) -> Dict[str, Any]:
        if not isinstance(path, str):
            error_msg = f"{label} must be a string, got {type(path).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a path string, got {type(path).__name__}"
            }

        if not path.strip():
            error_msg = f"{label} cannot be empty"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ {label} path cannot be empty"
            }

        try:
            normalized_path = str(Path(path).expanduser().resolve())
        except (OSError, ValueError) as e:
            error_msg = f"Invalid {label.lower()} path: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid path format: {path}"
            }

        setattr(self, attribute, normalized_path)
        self.logger.info(f"{label} set to {normalized_path}")
        return {
            'success': True,
            'message': f"{label} set to {normalized_path}",
            'user_message': f"✅ {label} set to {normalized_path}"
        }

    def apply_config(self, config: Optional[Dict[str, Any]]) -> List[str]:
        """
        Apply the 'quiz' section of a loaded config.json.

        Invalid values are logged and skipped, leaving defaults in place.

        Returns:
            User-friendly messages for every rejected value
        """
        quiz_config = (config or {}).get('quiz', {})
        setters = [
            ('questions_amount', self.set_questions_amount),
            ('feedback_delay', self.set_feedback_delay),
            ('movies_file', self.set_movies_file),
            ('statistics_file', self.set_statistics_file),
        ]

        rejected = []
        for key, setter in setters:
            if key not in quiz_config:
                continue
            result = setter(quiz_config[key])
            if not result['success']:
                rejected.append(result['user_message'])

        if rejected:
            self.logger.warning(f"Rejected {len(rejected)} configuration values, using defaults for them")
        else:
            self.logger.info("Configuration applied successfully")
        return rejected

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

        amount = self._settings.questions_amount
        if (not isinstance(amount, int) or
                amount < self.MIN_QUESTIONS_AMOUNT or
                amount > self.MAX_QUESTIONS_AMOUNT):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid questions amount: {amount}")

        delay = self._settings.feedback_delay
        if (not isinstance(delay, (int, float)) or
                delay < self.MIN_FEEDBACK_DELAY or
                delay > self.MAX_FEEDBACK_DELAY):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid feedback delay: {delay}")

        if not Path(self._movies_file).exists():
            validation_result["valid"] = False
            validation_result["issues"].append(f"Movies file does not exist: {self._movies_file}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        return (
            f"Quiz Settings:\n"
            f"• Questions per round: {self._settings.questions_amount}\n"
            f"• Feedback delay: {self._settings.feedback_delay:g} seconds\n"
            f"• Movies file: {self._movies_file}\n"
            f"• Statistics file: {self._statistics_file}"
        )
