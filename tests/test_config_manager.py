"""
Unit tests for ConfigManager class.
"""
import unittest
import logging
from pathlib import Path

from quizlator.config_manager import ConfigManager
from tests.test_fixtures import TestFixtures


class TestConfigManager(unittest.TestCase):
    """Test cases for ConfigManager functionality."""

    def setUp(self):
        """Set up test fixtures before each test method."""
        self.config_manager = ConfigManager()

        # Suppress logging during tests
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        """Clean up after each test method."""
        logging.disable(logging.NOTSET)

    def test_initialization_with_defaults(self):
        """Test that ConfigManager initializes with correct default values."""
        settings = self.config_manager.get_quiz_settings()

        self.assertEqual(settings.question_count, 5)
        self.assertEqual(settings.timer_duration, 25)
        self.assertTrue(settings.dark_mode)
        self.assertFalse(settings.show_leaderboard)
        self.assertEqual(self.config_manager.get_leaderboard_path(), "./data/quiz_scores.json")
        self.assertEqual(self.config_manager.get_model_name(), "meta-llama/Meta-Llama-3-8B-Instruct")
        self.assertEqual(self.config_manager.get_model_timeout(), 60.0)

    def test_get_quiz_settings_returns_copy(self):
        """Test that modifying returned settings doesn't affect the manager."""
        settings = self.config_manager.get_quiz_settings()
        settings.question_count = 99

        self.assertEqual(self.config_manager.get_question_count(), 5)

    def test_set_question_count_valid_values(self):
        """Test setting question counts inside the allowed range."""
        for value in (1, 7, 20):
            with self.subTest(value=value):
                result = self.config_manager.set_question_count(value)
                self.assertTrue(result['success'])
                self.assertEqual(result['value'], value)
                self.assertEqual(self.config_manager.get_question_count(), value)

    def test_set_question_count_clamped(self):
        """Test that out-of-range counts are clamped instead of rejected."""
        result = self.config_manager.set_question_count(0)
        self.assertTrue(result['success'])
        self.assertEqual(result['value'], 1)
        self.assertEqual(self.config_manager.get_question_count(), 1)

        result = self.config_manager.set_question_count(50)
        self.assertEqual(result['value'], 20)
        self.assertIn("1-20", result['user_message'])

        self.config_manager.set_question_count(-3)
        self.assertEqual(self.config_manager.get_question_count(), 1)

    def test_set_question_count_invalid_type(self):
        """Test that non-integer counts are rejected and the value kept."""
        for value in ("5", 2.5, None, True):
            with self.subTest(value=value):
                result = self.config_manager.set_question_count(value)
                self.assertFalse(result['success'])
                self.assertIn('user_message', result)
        self.assertEqual(self.config_manager.get_question_count(), 5)

    def test_clamp_question_count(self):
        self.assertEqual(self.config_manager.clamp_question_count(0), 1)
        self.assertEqual(self.config_manager.clamp_question_count(10), 10)
        self.assertEqual(self.config_manager.clamp_question_count(21), 20)

    def test_set_timer_duration(self):
        """Test timer duration validation bounds."""
        self.assertTrue(self.config_manager.set_timer_duration(5)['success'])
        self.assertTrue(self.config_manager.set_timer_duration(300)['success'])
        self.assertEqual(self.config_manager.get_timer_duration(), 300)

        self.assertFalse(self.config_manager.set_timer_duration(4)['success'])
        self.assertFalse(self.config_manager.set_timer_duration(301)['success'])
        self.assertFalse(self.config_manager.set_timer_duration("30")['success'])
        self.assertEqual(self.config_manager.get_timer_duration(), 300)

    def test_toggle_dark_mode(self):
        """Test switching between dark and light theme."""
        result = self.config_manager.toggle_dark_mode()
        self.assertFalse(result['new_value'])
        self.assertFalse(self.config_manager.is_dark_mode())

        result = self.config_manager.toggle_dark_mode()
        self.assertTrue(result['new_value'])
        self.assertTrue(self.config_manager.is_dark_mode())

    def test_toggle_leaderboard(self):
        result = self.config_manager.toggle_leaderboard()
        self.assertTrue(result['new_value'])
        self.assertTrue(self.config_manager.get_quiz_settings().show_leaderboard)

        self.config_manager.toggle_leaderboard()
        self.assertFalse(self.config_manager.get_quiz_settings().show_leaderboard)

    def test_set_leaderboard_path(self):
        """Test that valid paths are normalized and invalid ones rejected."""
        result = self.config_manager.set_leaderboard_path("scores/test.json")
        self.assertTrue(result['success'])
        self.assertEqual(
            self.config_manager.get_leaderboard_path(),
            str(Path("scores/test.json").resolve())
        )

        self.assertFalse(self.config_manager.set_leaderboard_path("")['success'])
        self.assertFalse(self.config_manager.set_leaderboard_path("   ")['success'])
        self.assertFalse(self.config_manager.set_leaderboard_path(None)['success'])

    def test_set_model(self):
        """Test model name and timeout validation."""
        result = self.config_manager.set_model(" org/model ", 15)
        self.assertTrue(result['success'])
        self.assertEqual(self.config_manager.get_model_name(), "org/model")
        self.assertEqual(self.config_manager.get_model_timeout(), 15.0)

        self.assertFalse(self.config_manager.set_model("")['success'])
        self.assertFalse(self.config_manager.set_model("org/other", 0)['success'])
        self.assertFalse(self.config_manager.set_model("org/other", True)['success'])
        self.assertEqual(self.config_manager.get_model_name(), "org/model")

    def test_apply_config(self):
        """Test applying a parsed config.json dictionary."""
        errors = self.config_manager.apply_config(TestFixtures.create_config())

        self.assertEqual(errors, [])
        self.assertEqual(self.config_manager.get_question_count(), 3)
        self.assertEqual(self.config_manager.get_timer_duration(), 10)
        self.assertFalse(self.config_manager.is_dark_mode())
        self.assertEqual(self.config_manager.get_model_name(), "test/model")
        self.assertEqual(self.config_manager.get_model_timeout(), 5.0)

    def test_apply_config_reports_invalid_values(self):
        """Test that invalid values are skipped and reported."""
        config = {
            "quiz": {"timer_duration": 1, "default_question_count": "many"},
            "model": {"timeout": -1}
        }
        errors = self.config_manager.apply_config(config)

        self.assertEqual(len(errors), 3)
        self.assertEqual(self.config_manager.get_timer_duration(), 25)
        self.assertEqual(self.config_manager.get_question_count(), 5)
        self.assertEqual(self.config_manager.get_model_timeout(), 60.0)

    def test_apply_empty_config(self):
        self.assertEqual(self.config_manager.apply_config({}), [])
        self.assertEqual(self.config_manager.get_question_count(), 5)

    def test_reset_to_defaults(self):
        """Test that reset restores every default."""
        self.config_manager.apply_config(TestFixtures.create_config())
        self.config_manager.toggle_leaderboard()

        self.config_manager.reset_to_defaults()

        settings = self.config_manager.get_quiz_settings()
        self.assertEqual(settings.question_count, 5)
        self.assertEqual(settings.timer_duration, 25)
        self.assertTrue(settings.dark_mode)
        self.assertFalse(settings.show_leaderboard)
        self.assertEqual(self.config_manager.get_model_name(), ConfigManager.DEFAULT_MODEL_NAME)

    def test_validate_settings(self):
        self.assertTrue(self.config_manager.validate_settings()['valid'])

        self.config_manager._global_settings.question_count = 0
        result = self.config_manager.validate_settings()
        self.assertFalse(result['valid'])
        self.assertEqual(len(result['issues']), 1)

    def test_settings_summary(self):
        summary = self.config_manager.get_settings_summary()

        self.assertIn("Pytania: 5", summary)
        self.assertIn("Czas: 25 s", summary)
        self.assertIn("ciemny", summary)


if __name__ == '__main__':
    unittest.main()
