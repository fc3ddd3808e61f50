"""
Unit tests for category and quiz response parsing.
"""
import random
import unittest
from collections import Counter

from quizlator.errors import EmptyQuizResult, FetchFailure, MalformedCategoryResponse, UnmatchedCorrectAnswer
from quizlator.models import DEFAULT_CATEGORIES
from quizlator.response_parser import build_question, parse_categories, parse_quiz, parse_quiz_line
from tests.test_fixtures import TestFixtures


class TestParseCategories(unittest.TestCase):
    """Test cases for parse_categories."""

    def test_ten_categories_split_into_groups(self):
        """Test that ten fragments fill both columns in order."""
        result = parse_categories(TestFixtures.CATEGORY_RESPONSE)

        self.assertEqual(result, TestFixtures.create_sample_categories())

    def test_lead_in_and_numbering_ignored(self):
        """Test parsing of a response wrapped in lead-in text and numbering."""
        text = (
            "Oto kategorie:\n1. Python\n2. Sieci\n3. Chmura\n4. Linux\n5. Algorytmy\n"
            "6. Historia\n7. Muzyka\n8. Sztuka\n9. Astronomia\n10. Kuchnia"
        )
        result = parse_categories(text)

        self.assertEqual(result.technical, ("Python", "Sieci", "Chmura", "Linux", "Algorytmy"))
        self.assertEqual(result.general, ("Historia", "Muzyka", "Sztuka", "Astronomia", "Kuchnia"))

    def test_mixed_separators(self):
        """Test that commas, semicolons and newlines all separate categories."""
        text = "Python;Sieci,Chmura\nLinux;Algorytmy,Historia\nMuzyka;Sztuka,Astronomia\nKuchnia"
        self.assertEqual(parse_categories(text), TestFixtures.create_sample_categories())

    def test_short_fragments_discarded(self):
        """Test that fragments shorter than three characters are dropped."""
        text = "AI, Python, Sieci, Chmura, Linux, Algorytmy, , Historia, Muzyka, Sztuka, Astronomia, Kuchnia"
        result = parse_categories(text)

        self.assertNotIn("AI", result.all())
        self.assertEqual(result.technical[0], "Python")

    def test_extra_fragments_ignored(self):
        """Test that fragments after the tenth are ignored."""
        text = TestFixtures.CATEGORY_RESPONSE + ", Ekstra, Jeszcze"
        result = parse_categories(text)

        self.assertEqual(len(result.all()), 10)
        self.assertNotIn("Ekstra", result.all())

    def test_eight_fragments_padded_from_defaults(self):
        """Test that a response with 8 fragments is topped up with default general labels."""
        text = "Python, Sieci, Chmura, Linux, Algorytmy, Historia, Muzyka, Sztuka"
        result = parse_categories(text)

        self.assertEqual(len(result.technical), 5)
        self.assertEqual(len(result.general), 5)
        self.assertEqual(result.general[:3], ("Historia", "Muzyka", "Sztuka"))
        # "Historia" is already taken, so padding continues with the next defaults
        self.assertEqual(result.general[3:], ("Geografia", "Film"))
        for label in result.general[3:]:
            self.assertIn(label, DEFAULT_CATEGORIES.general)

    def test_padding_falls_back_to_technical_defaults(self):
        """Test padding when most default general labels are already used."""
        text = "Historia,Geografia,Film,Sport,Muzyka,JS,Go,Rust,SQL,Linux"
        result = parse_categories(text)

        self.assertEqual(result.technical, ("Historia", "Geografia", "Film", "Sport", "Muzyka"))
        self.assertEqual(result.general, ("Rust", "SQL", "Linux", "Literatura", "JavaScript"))

    def test_too_few_fragments_raises(self):
        """Test that fewer than eight fragments is a malformed response."""
        with self.assertRaises(MalformedCategoryResponse):
            parse_categories("Python, Linux, Historia")

        with self.assertRaises(MalformedCategoryResponse):
            parse_categories("")

    def test_short_fragments_do_not_count(self):
        """Test that discarded fragments are not counted toward the minimum."""
        text = "Python, Sieci, Chmura, Linux, Algorytmy, Historia, Muzyka, AB, CD"
        with self.assertRaises(MalformedCategoryResponse):
            parse_categories(text)


class TestParseQuiz(unittest.TestCase):
    """Test cases for parse_quiz and parse_quiz_line."""

    def test_single_line_example(self):
        """Test parsing the canonical single question line."""
        questions = parse_quiz("Stolica Polski?|Warszawa,Kraków,Łódź,Gdańsk|Warszawa")

        self.assertEqual(len(questions), 1)
        question = questions[0]
        self.assertEqual(question.text, "Stolica Polski?")
        self.assertEqual(question.correct_answer, "Warszawa")
        self.assertEqual(sorted(question.options), sorted(["Warszawa", "Kraków", "Łódź", "Gdańsk"]))

    def test_sample_response_preserves_order(self):
        """Test that a realistic response yields questions in their original order."""
        questions = parse_quiz(TestFixtures.QUIZ_RESPONSE, rng=TestFixtures.seeded_rng())

        self.assertEqual([q.text for q in questions], ["Stolica Polski?", "Ile to 2+2?", "Kolor nieba?"])

    def test_invalid_lines_skipped(self):
        """Test that five lines with three valid ones produce three questions."""
        text = "\n".join([
            "Stolica Polski?|Warszawa,Kraków|Warszawa",
            "to nie jest pytanie",
            "Ile to 2+2?|4|4",
            "Kolor nieba?|Niebieski,Zielony|Niebieski",
            "Największa planeta?|Jowisz,Mars,Ziemia|Jowisz",
        ])
        questions = parse_quiz(text)

        self.assertEqual(len(questions), 3)
        self.assertEqual(
            [q.text for q in questions],
            ["Stolica Polski?", "Kolor nieba?", "Największa planeta?"]
        )

    def test_line_rules(self):
        """Test the individual rules that reject a line."""
        self.assertIsNone(parse_quiz_line("bez separatora"))
        self.assertIsNone(parse_quiz_line("Pytanie?|A,B"))
        self.assertIsNone(parse_quiz_line("Abc|A,B|A"))
        self.assertIsNone(parse_quiz_line("Pytanie?|A|A"))

    def test_fields_trimmed(self):
        """Test that options and the correct answer are trimmed."""
        question = parse_quiz_line("  Pytanie?  | A , B ,C |  B  ", rng=random.Random(0))

        self.assertEqual(question.text, "Pytanie?")
        self.assertEqual(question.correct_answer, "B")
        self.assertEqual(sorted(question.options), ["A", "B", "C"])

    def test_extra_fields_ignored(self):
        """Test that fields after the correct answer are ignored."""
        question = parse_quiz_line("Pytanie?|A,B|A|wyjaśnienie")
        self.assertEqual(question.correct_answer, "A")

    def test_question_text_sanitized(self):
        """Test that markdown in the question field is cleaned."""
        question = parse_quiz_line("1. **Łatwe** Pytanie?|A,B|A")
        self.assertEqual(question.text, "Pytanie?")

    def test_empty_result_raises(self):
        """Test that a response without any valid line raises EmptyQuizResult."""
        with self.assertRaises(EmptyQuizResult):
            parse_quiz("Przepraszam, nie mogę tego zrobić.")

        with self.assertRaises(EmptyQuizResult):
            parse_quiz("")

    def test_empty_result_is_fetch_failure(self):
        """Test that EmptyQuizResult is handled as a fetch failure."""
        self.assertTrue(issubclass(EmptyQuizResult, FetchFailure))

    def test_unmatched_answer_dropped(self):
        """Test that a question whose answer is not an option is dropped."""
        text = "Stolica Polski?|Kraków,Łódź|Warszawa\nIle to 2+2?|3,4|4"
        questions = parse_quiz(text)

        self.assertEqual([q.text for q in questions], ["Ile to 2+2?"])

    def test_unmatched_answer_kept_when_not_required(self):
        """Test that the matching check can be switched off."""
        questions = parse_quiz("Stolica Polski?|Kraków,Łódź|Warszawa", require_matching_answer=False)

        self.assertEqual(len(questions), 1)
        self.assertEqual(questions[0].correct_answer, "Warszawa")

    def test_correct_answer_always_in_options(self):
        """Test that every parsed question contains its correct answer."""
        for question in parse_quiz(TestFixtures.QUIZ_RESPONSE):
            self.assertIn(question.correct_answer, question.options)


class TestBuildQuestion(unittest.TestCase):
    """Test cases for option shuffling in build_question."""

    def test_unmatched_answer_raises(self):
        """Test that build_question rejects an answer missing from the options."""
        with self.assertRaises(UnmatchedCorrectAnswer) as context:
            build_question("Pytanie?", ["A", "B"], "C")

        self.assertEqual(context.exception.correct_answer, "C")
        self.assertEqual(context.exception.options, ["A", "B"])

    def test_options_are_permutation(self):
        """Test that shuffling keeps every option exactly once."""
        options = ["A", "B", "C", "D"]
        question = build_question("Pytanie?", options, "A", rng=random.Random(7))

        self.assertEqual(Counter(question.options), Counter(options))
        self.assertEqual(options, ["A", "B", "C", "D"])

    def test_seeded_rng_is_reproducible(self):
        """Test that the same seed gives the same order."""
        first = build_question("Pytanie?", ["A", "B", "C", "D"], "A", rng=random.Random(99))
        second = build_question("Pytanie?", ["A", "B", "C", "D"], "A", rng=random.Random(99))

        self.assertEqual(first.options, second.options)

    def test_shuffle_is_roughly_uniform(self):
        """Test that each option lands in the first slot about equally often."""
        rng = random.Random(2024)
        options = ["A", "B", "C", "D"]
        trials = 4000
        first_slot = Counter(
            build_question("Pytanie?", options, "A", rng=rng).options[0]
            for _ in range(trials)
        )

        for option in options:
            # Expected 1000 each; bounds are far outside normal variation
            self.assertGreater(first_slot[option], 850)
            self.assertLess(first_slot[option], 1150)


if __name__ == '__main__':
    unittest.main()
