"""
Parsers turning cleaned model output into categories and quiz questions.
"""
import logging
import random
import re
from typing import List, Optional

from .errors import EmptyQuizResult, MalformedCategoryResponse, UnmatchedCorrectAnswer
from .models import CATEGORIES_PER_GROUP, DEFAULT_CATEGORIES, CategorySet, QuizQuestion
from .text_sanitizer import clean_ai_output

logger = logging.getLogger(__name__)

CATEGORY_SEPARATORS = re.compile(r"[,\n;]")
MIN_CATEGORY_FRAGMENTS = 8
MIN_CATEGORY_LENGTH = 3
MIN_QUESTION_LENGTH = 4
MIN_OPTIONS = 2
FIELD_SEPARATOR = "|"


def parse_categories(text: str) -> CategorySet:
    """
    Split a category response into the technical and general columns.

    The first five fragments become the technical column, the next five the
    general one; anything after the tenth fragment is ignored. With only
    8 or 9 fragments the general column is topped up from the default
    labels (general first) that are not already in the set.

    Args:
        text: Model output, sanitized or raw

    Returns:
        New CategorySet

    Raises:
        MalformedCategoryResponse: If fewer than 8 usable fragments are found
    """
    fragments = [part.strip() for part in CATEGORY_SEPARATORS.split(clean_ai_output(text))]
    fragments = [part for part in fragments if len(part) >= MIN_CATEGORY_LENGTH]

    if len(fragments) < MIN_CATEGORY_FRAGMENTS:
        raise MalformedCategoryResponse(
            f"Expected at least {MIN_CATEGORY_FRAGMENTS} categories, got {len(fragments)}"
        )

    technical = fragments[:CATEGORIES_PER_GROUP]
    general = fragments[CATEGORIES_PER_GROUP:CATEGORIES_PER_GROUP * 2]

    if len(general) < CATEGORIES_PER_GROUP:
        taken = set(technical) | set(general)
        for label in DEFAULT_CATEGORIES.general + DEFAULT_CATEGORIES.technical:
            if len(general) == CATEGORIES_PER_GROUP:
                break
            if label not in taken:
                general.append(label)

    return CategorySet(technical=tuple(technical), general=tuple(general))


def build_question(
    question_text: str,
    options: List[str],
    correct_answer: str,
    rng: Optional[random.Random] = None,
    require_matching_answer: bool = True,
) -> QuizQuestion:
    """
    Create a QuizQuestion with its options shuffled.

    Raises:
        UnmatchedCorrectAnswer: If require_matching_answer is set and the
            correct answer is not one of the options
    """
    if require_matching_answer and correct_answer not in options:
        raise UnmatchedCorrectAnswer(question_text, correct_answer, options)

    shuffled = list(options)
    # random.shuffle is Fisher-Yates, every permutation equally likely
    (rng or random).shuffle(shuffled)
    return QuizQuestion(
        text=question_text,
        options=tuple(shuffled),
        correct_answer=correct_answer,
    )


def parse_quiz_line(
    line: str,
    rng: Optional[random.Random] = None,
    require_matching_answer: bool = True,
) -> Optional[QuizQuestion]:
    """
    Parse one `Question|OptA,OptB,...|Correct` line.

    Returns:
        QuizQuestion, or None if the line is not a usable question

    Raises:
        UnmatchedCorrectAnswer: Propagated from build_question
    """
    if FIELD_SEPARATOR not in line:
        return None

    parts = line.split(FIELD_SEPARATOR)
    if len(parts) < 3:
        return None

    question_text = clean_ai_output(parts[0])
    options = [option.strip() for option in parts[1].split(",")]
    correct_answer = parts[2].strip()

    if len(question_text) < MIN_QUESTION_LENGTH or len(options) < MIN_OPTIONS:
        return None

    return build_question(
        question_text,
        options,
        correct_answer,
        rng=rng,
        require_matching_answer=require_matching_answer,
    )


def parse_quiz(
    text: str,
    rng: Optional[random.Random] = None,
    require_matching_answer: bool = True,
) -> List[QuizQuestion]:
    """
    Parse a question-generation response into quiz questions.

    Lines that do not describe a valid question are skipped; the order of
    the remaining questions is preserved.

    Args:
        text: Raw model output
        rng: Random source for option shuffling (module random if None)
        require_matching_answer: Drop questions whose correct answer is not
            one of their options

    Returns:
        Non-empty list of QuizQuestion

    Raises:
        EmptyQuizResult: If no line produced a question
    """
    questions: List[QuizQuestion] = []
    skipped = 0

    for line in (text or "").split("\n"):
        try:
            question = parse_quiz_line(line, rng=rng, require_matching_answer=require_matching_answer)
        except UnmatchedCorrectAnswer as e:
            logger.warning(
                f"Dropping question with unmatched correct answer: {e}",
                extra={
                    'event_type': 'quiz_parse_unmatched_answer',
                    'question': e.question_text,
                    'correct_answer': e.correct_answer,
                }
            )
            skipped += 1
            continue

        if question is None:
            if FIELD_SEPARATOR in line:
                skipped += 1
            continue
        questions.append(question)

    if not questions:
        raise EmptyQuizResult("No valid questions found in model response")

    logger.debug(
        f"Parsed {len(questions)} questions ({skipped} malformed lines skipped)",
        extra={
            'event_type': 'quiz_parsed',
            'question_count': len(questions),
            'skipped_lines': skipped,
        }
    )
    return questions
