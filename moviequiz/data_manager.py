"""
Movies loader for JSON file operations and movie data validation.
"""
import json
import logging
from pathlib import Path
from typing import List

from .errors import SourceFailure
from .models import Movie


class MoviesLoadError(SourceFailure):
    """Raised when the movies file cannot be read or is malformed."""
    pass


class MoviesLoader:
    """Loads and validates the movies JSON file."""

    def __init__(self, movies_file: str = "./data/movies.json"):
        """
        Initialize MoviesLoader with the movies file path.

        Args:
            movies_file: Path to JSON file with the movie list
        """
        self.movies_file = Path(movies_file)
        self.logger = logging.getLogger(__name__)
        self.load_errors: List[str] = []  # Skipped items, for diagnostics

    def load_movies(self) -> List[Movie]:
        """
        Load all movies from the movies file.

        Returns:
            List of Movie objects

        Raises:
            MoviesLoadError: If the file is missing, unreadable, not valid
                JSON, has an invalid structure or contains no usable movie
        """
        self.load_errors.clear()
        data = self._load_single_file(self.movies_file)

        if not self.validate_movies_structure(data):
            raise MoviesLoadError(f"Invalid movies structure in {self.movies_file}")

        movies = self._parse_movies(data)
        if not movies:
            raise MoviesLoadError(f"No usable movies in {self.movies_file}")

        self.logger.info(f"Loaded {len(movies)} movies from {self.movies_file}")
        if self.load_errors:
            self.logger.warning(f"Skipped {len(self.load_errors)} movie entries")
        return movies

    def _load_single_file(self, file_path: Path) -> dict:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in {file_path}: {e}")
            raise MoviesLoadError(f"Invalid JSON in {file_path.name}: {e}") from e
        except FileNotFoundError as e:
            self.logger.error(f"Movies file not found: {file_path}")
            raise MoviesLoadError(f"Movies file not found: {file_path}") from e
        except OSError as e:
            self.logger.error(f"Failed to read movies file {file_path}: {e}")
            raise MoviesLoadError(f"Failed to read movies file {file_path.name}: {e}") from e

    def validate_movies_structure(self, data: dict) -> bool:
        """
        Validate that JSON data has the expected movies structure.

        Expected structure:
        {
            "items": [
                {
                    "title": str,
                    "rating": str | number,
                    "image": str
                }
            ]
        }

        Args:
            data: Parsed JSON data to validate

        Returns:
            True if structure is valid, False otherwise
        """
        if not isinstance(data, dict):
            self.logger.error("Movies data must be a JSON object")
            return False

        if "items" not in data:
            self.logger.error("Movies data must contain an 'items' key")
            return False

        items = data["items"]
        if not isinstance(items, list):
            self.logger.error("'items' value must be an array")
            return False

        if not items:
            self.logger.error("Items array cannot be empty")
            return False

        for i, item in enumerate(items):
            if not isinstance(item, dict):
                self.logger.error(f"Item {i} must be an object")
                return False

            for field_name in ("title", "rating", "image"):
                if field_name not in item:
                    self.logger.error(f"Item {i} missing '{field_name}' field")
                    return False

            if not isinstance(item["title"], str):
                self.logger.error(f"Item {i} 'title' field must be a string")
                return False

            if not isinstance(item["image"], str):
                self.logger.error(f"Item {i} 'image' field must be a string")
                return False

        return True

    def _parse_movies(self, data: dict) -> List[Movie]:
        movies = []

        for i, item in enumerate(data["items"]):
            rating = self._parse_rating(item["rating"])
            if rating is None:
                self.load_errors.append(f"Item {i} ({item['title']}): unusable rating {item['rating']!r}")
                continue
            movies.append(Movie(title=item["title"], rating=rating, image_ref=item["image"]))

        return movies

    @staticmethod
    def _parse_rating(value):
        # IMDb ships ratings as strings, and "" for unrated titles
        if isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None
