import re
from typing import List, Optional

from sceneguard.models import MatchResult

KEYWORD_RATIO = 0.7
MIN_KEYWORDS = 3
SENTENCE_SEARCH_SPAN = 200
FALLBACK_MATCH_LENGTH = 50

_PUNCTUATION = re.compile(r"[.,!?\"“”'‘’…:;]")
_SENTENCE_END = re.compile(r"[.!?。]")
_QUOTED = re.compile(r"[\"“]([^\"“”]+)[\"”]")


def extract_keywords(end_condition: str) -> List[str]:
    """Split an end condition into distinct tokens of two or more characters."""
    if not end_condition:
        return []

    keywords = []
    for word in _PUNCTUATION.sub("", end_condition).split():
        if len(word) >= 2 and word not in keywords:
            keywords.append(word)
    return keywords


def _sentence_end(window: str, start: int) -> int:
    """Offset just past the next sentence terminator, or a fixed span."""
    match = _SENTENCE_END.search(window, start, start + SENTENCE_SEARCH_SPAN)
    if match:
        return match.end()
    return start + FALLBACK_MATCH_LENGTH


def match_exact(window: str, end_condition: str) -> MatchResult:
    index = window.find(end_condition)
    if index == -1:
        return MatchResult(reached=False)
    return MatchResult(reached=True, position=index, match_length=len(end_condition))


def match_keywords(window: str, keywords: List[str]) -> MatchResult:
    """Fuzzy match: most of the keywords present anywhere in the window.

    The cut anchors on the last occurrence of the latest found keyword and
    runs to the end of that sentence.
    """
    if len(keywords) < MIN_KEYWORDS:
        return MatchResult(reached=False)

    found = [kw for kw in keywords if kw in window]
    if len(found) / len(keywords) < KEYWORD_RATIO:
        return MatchResult(reached=False)

    last_position = max(window.rfind(kw) for kw in found)
    end = _sentence_end(window, last_position)
    return MatchResult(reached=True, position=last_position, match_length=end - last_position)


def match_dialogue(window: str, end_condition: str) -> MatchResult:
    """Match any quoted line of the end condition."""
    for fragment in _QUOTED.findall(end_condition):
        clean = re.sub(r"[\"“”:]", "", fragment).strip()
        if not clean:
            continue
        index = window.find(clean)
        if index != -1:
            return MatchResult(reached=True, position=index, match_length=len(clean))
    return MatchResult(reached=False)


def match_end_condition(
    window: str,
    end_condition: str,
    end_condition_type: str = "narration",
    keywords: Optional[List[str]] = None,
) -> MatchResult:
    """Decide whether the end condition has been written into the window."""
    if not end_condition:
        return MatchResult(reached=False)

    result = match_exact(window, end_condition)
    if result.reached:
        return result

    if keywords is None:
        keywords = extract_keywords(end_condition)
    result = match_keywords(window, keywords)
    if result.reached:
        return result

    if end_condition_type == "dialogue":
        return match_dialogue(window, end_condition)

    return MatchResult(reached=False)
