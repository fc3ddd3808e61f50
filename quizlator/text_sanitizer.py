"""
Cleanup of raw model output before it is shown or parsed.
"""
import re
from typing import Optional

# **bold** spans are dropped together with their content
BOLD_SPAN = re.compile(r"\*\*.*?\*\*")
# Only the very start of the text; one clause up to the first colon or line break
LEAD_IN = re.compile(r"^(?:Oto|Podaję|Tu są|Poniżej).*?[:\n]", re.IGNORECASE)
LIST_NUMBERING = re.compile(r"^\d+[.)]\s*", re.MULTILINE)
FORMATTING_MARKERS = re.compile(r"[*#_]")


def _clean_once(text: str) -> str:
    text = BOLD_SPAN.sub("", text)
    text = LEAD_IN.sub("", text, count=1)
    text = LIST_NUMBERING.sub("", text)
    text = FORMATTING_MARKERS.sub("", text)
    return text.strip()


def clean_ai_output(text: Optional[str]) -> str:
    """
    Strip markdown artifacts and boilerplate lead-ins from model output.

    Each pass only deletes characters, so repeating it until nothing changes
    terminates and makes the result stable under a second application.

    Args:
        text: Raw text returned by the model (None is treated as empty)

    Returns:
        Cleaned text
    """
    if not text:
        return ""

    cleaned = _clean_once(text)
    while True:
        again = _clean_once(cleaned)
        if again == cleaned:
            return cleaned
        cleaned = again
