import math
from typing import Iterable, List, Optional

from pydantic import BaseModel

from sceneguard.lint.rules import compile_pattern
from sceneguard.models import Detection, GuardLimits, Rule

MIN_NAME_LENGTH = 2
CONTEXT_CHARS = 10


class BudgetBreach(BaseModel):
    """A length ceiling the accumulated text has reached."""
    limit: int
    description: str
    reason: str


def detect_rule_match(window: str, rules: List[Rule], start: int = 0) -> Optional[Detection]:
    """Earliest rule match at or after start; table order breaks ties."""
    found = None
    for rule in rules:
        match = compile_pattern(rule.pattern).search(window, start)
        if match and (found is None or match.start() < found[0].start()):
            found = (match, rule)

    if found is None:
        return None
    match, rule = found
    return Detection(
        position=match.start(),
        matched_text=match.group(0),
        description=rule.description,
        severity=rule.severity,
    )


def detect_unauthorized_character(
    window: str,
    participants: List[str],
    roster: List[str],
    already_flagged: Iterable[str] = (),
) -> Optional[Detection]:
    """Roster names that are not scene participants."""
    if not participants or not roster:
        return None

    flagged = set(already_flagged)
    for name in roster:
        if name in participants or name in flagged:
            continue
        if len(name) < MIN_NAME_LENGTH:
            continue

        index = window.find(name)
        if index != -1:
            context = window[max(0, index - CONTEXT_CHARS):index + len(name) + CONTEXT_CHARS]
            return Detection(position=index, matched_text=context, subject=name)

    return None


def detect_next_scene_keyword(window: str, keywords: List[str], start: int = 0) -> Optional[Detection]:
    """Keywords reserved for a later scene."""
    for keyword in keywords:
        if len(keyword) < MIN_NAME_LENGTH:
            continue
        index = window.find(keyword, start)
        if index != -1:
            return Detection(position=index, matched_text=keyword, subject=keyword)
    return None


def relative_ceiling(target_length: Optional[int], limits: GuardLimits) -> int:
    ceiling = limits.absolute_max_length
    if target_length:
        ceiling = min(target_length, ceiling)
    # rounded first so float noise cannot push an exact product up a step
    return math.ceil(round(ceiling * limits.relative_ceiling_ratio, 6))


def check_length_budget(length: int, target_length: Optional[int], limits: GuardLimits) -> Optional[BudgetBreach]:
    """Check the whole accumulated length against both ceilings."""
    absolute = limits.absolute_max_length
    if length >= absolute:
        return BudgetBreach(
            limit=absolute,
            description=f"Absolute length ceiling reached ({length}/{absolute})",
            reason=f"Stopped at absolute length ceiling ({absolute} chars)",
        )

    threshold = relative_ceiling(target_length, limits)
    if length >= threshold:
        percent = round(limits.relative_ceiling_ratio * 100)
        return BudgetBreach(
            limit=threshold,
            description=f"Length reached {percent}% of target ({length}/{threshold})",
            reason=f"Stopped at {percent}% length threshold ({threshold} chars)",
        )

    return None
