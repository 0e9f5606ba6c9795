"""
Unit tests for MoviesLoader class.
"""
import os
import shutil
import tempfile
import unittest
from pathlib import Path

from moviequiz.data_manager import MoviesLoader, MoviesLoadError
from moviequiz.errors import SourceFailure
from moviequiz.models import Movie
from tests.test_fixtures import TestFixtures


class TestMoviesLoader(unittest.TestCase):
    """Test cases for MoviesLoader functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.loader = MoviesLoader(os.path.join(self.temp_dir, "movies.json"))

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_validate_movies_structure_valid_data(self):
        """Test validation with valid movies structure."""
        self.assertTrue(self.loader.validate_movies_structure(TestFixtures.create_valid_movies_json()))

    def test_validate_movies_structure_invalid_data(self):
        """Test validation fails for each malformed structure."""
        for data in TestFixtures.create_invalid_movies_json_structures():
            with self.subTest(data=data):
                self.assertFalse(self.loader.validate_movies_structure(data))

    def test_load_movies_valid_json(self):
        """Test loading a valid movies file."""
        TestFixtures.write_json(self.temp_dir, "movies.json", TestFixtures.create_valid_movies_json())

        movies = self.loader.load_movies()

        self.assertEqual(len(movies), 3)
        self.assertEqual(movies[0], Movie(title="The Godfather", rating=9.2, image_ref="posters/the_godfather.jpg"))
        self.assertEqual(movies[2].rating, 5.1)

    def test_load_movies_skips_unusable_ratings(self):
        """Test items with unparseable ratings are skipped and recorded."""
        data = TestFixtures.create_valid_movies_json()
        data["items"].append({"title": "Unreleased", "rating": "", "image": "posters/unreleased.jpg"})
        data["items"].append({"title": "Odd", "rating": True, "image": "posters/odd.jpg"})
        TestFixtures.write_json(self.temp_dir, "movies.json", data)

        movies = self.loader.load_movies()

        self.assertEqual(len(movies), 3)
        self.assertEqual(len(self.loader.load_errors), 2)

    def test_load_movies_all_ratings_unusable(self):
        """Test a file with no usable movies raises."""
        data = {"items": [{"title": "Unreleased", "rating": "", "image": "x.jpg"}]}
        TestFixtures.write_json(self.temp_dir, "movies.json", data)

        with self.assertRaises(MoviesLoadError):
            self.loader.load_movies()

    def test_load_movies_missing_file(self):
        """Test a missing file raises MoviesLoadError."""
        with self.assertRaises(MoviesLoadError) as context:
            self.loader.load_movies()

        self.assertIn("not found", str(context.exception))

    def test_load_movies_invalid_json(self):
        """Test invalid JSON raises MoviesLoadError."""
        Path(self.temp_dir, "movies.json").write_text("{ invalid json }", encoding='utf-8')

        with self.assertRaises(MoviesLoadError) as context:
            self.loader.load_movies()

        self.assertIn("Invalid JSON", str(context.exception))

    def test_load_movies_invalid_structure(self):
        """Test structurally invalid data raises MoviesLoadError."""
        TestFixtures.write_json(self.temp_dir, "movies.json", {"items": []})

        with self.assertRaises(MoviesLoadError):
            self.loader.load_movies()

    def test_load_error_is_source_failure(self):
        """Test loader errors belong to the SourceFailure family."""
        self.assertTrue(issubclass(MoviesLoadError, SourceFailure))


if __name__ == '__main__':
    unittest.main()
