"""Incremental guard over streamed scene text.

A StreamGuard owns the text accumulated for one generation session. Each
call to ``process_chunk`` appends an increment, inspects only the trailing
window, and answers whether generation may continue. Once terminated the
guard ignores further input and its result no longer changes.
"""
import logging
from typing import Callable, Dict, List, Optional, Set

from sceneguard.lint.detectors import (
    check_length_budget,
    detect_next_scene_keyword,
    detect_rule_match,
    detect_unauthorized_character,
    relative_ceiling,
)
from sceneguard.lint.end_condition import extract_keywords, match_end_condition
from sceneguard.lint.rules import default_rule_table
from sceneguard.models import (
    COMPRESSION,
    NEXT_SCENE_LEAK,
    SCOPE_EXCEEDED,
    TIME_JUMP,
    UNAUTHORIZED_CHARACTER,
    ChunkDecision,
    Detection,
    GuardConfig,
    GuardLimits,
    GuardResult,
    RuleTable,
    Violation,
)

logger = logging.getLogger(__name__)

END_CONDITION_REASON = "End condition reached"

_LABELS = {
    TIME_JUMP: "Time jump",
    COMPRESSION: "Narrative compression",
    UNAUTHORIZED_CHARACTER: "Unauthorized character",
    NEXT_SCENE_LEAK: "Next-scene keyword",
}


def _label(category: str) -> str:
    return _LABELS.get(category, category.replace("_", " ").capitalize())


class StreamGuard:
    """Enforces scene boundaries on text as it is generated.

    Not thread-safe: one instance per session, fed sequentially.
    """

    def __init__(
        self,
        config: GuardConfig,
        rules: Optional[RuleTable] = None,
        limits: Optional[GuardLimits] = None,
        on_violation: Optional[Callable[[Violation], None]] = None,
        on_end_condition_met: Optional[Callable[[str], None]] = None,
    ):
        self.config = config
        self.rules = rules if rules is not None else default_rule_table()
        self.limits = limits or GuardLimits()
        self.on_violation = on_violation
        self.on_end_condition_met = on_end_condition_met

        self._keywords = extract_keywords(config.scene.end_condition)
        self._rule_categories = self._ordered_categories()
        self.reset()

    def _ordered_categories(self) -> List[str]:
        categories = [c for c in (TIME_JUMP, COMPRESSION) if self.rules.for_category(c)]
        for category in self.rules.categories():
            if category not in categories:
                categories.append(category)
        return categories

    def reset(self):
        """Forget all text and violations so the guard can be reused."""
        self._content = ""
        self._violations: List[Violation] = []
        self._terminated = False
        self._termination_reason: Optional[str] = None
        self._end_condition_reached = False
        self._flagged_characters: Set[str] = set()
        self._resume_at: Dict[str, int] = {}
        self._half_budget_logged = False
        self._result: Optional[GuardResult] = None

    @property
    def is_terminated(self) -> bool:
        return self._terminated

    @property
    def content(self) -> str:
        return self._content

    def process_chunk(self, chunk: str) -> ChunkDecision:
        """Append one increment and decide whether generation may continue."""
        if self._terminated:
            return ChunkDecision(should_continue=False)

        previous_length = len(self._content)
        self._content += chunk
        window_start = max(0, len(self._content) - self.limits.window_size)
        if window_start > previous_length:
            # an increment longer than the window is inspected whole
            window_start = max(0, previous_length - self.limits.window_size // 2)
        window = self._content[window_start:]
        scene = self.config.scene

        match = match_end_condition(
            window, scene.end_condition, scene.end_condition_type, self._keywords
        )
        if match.reached:
            cut = min(window_start + match.position + match.match_length, len(self._content))
            forwarded = self._content[previous_length:cut]
            self._content = self._content[:cut] + self.limits.end_marker
            self._end_condition_reached = True
            self._terminate(END_CONDITION_REASON)
            if self.on_end_condition_met:
                self.on_end_condition_met(self._content)
            return ChunkDecision(should_continue=False, forwarded=forwarded)

        breach = check_length_budget(len(self._content), scene.target_length, self.limits)
        if breach:
            violation = self._record(
                Violation(
                    category=SCOPE_EXCEEDED,
                    severity="critical",
                    position=len(self._content),
                    description=breach.description,
                )
            )
            self._terminate(breach.reason)
            return ChunkDecision(should_continue=False, forwarded=chunk, violation=violation)
        self._log_progress()

        for category in self._rule_categories:
            detection = detect_rule_match(
                window,
                self.rules.for_category(category),
                self._resume_offset(category, window_start),
            )
            if detection:
                decision = self._handle(category, detection, window_start)
                if decision:
                    return decision

        detection = detect_unauthorized_character(
            window, scene.participants, self.config.character_roster, self._flagged_characters
        )
        if detection:
            self._flagged_characters.add(detection.subject)
            decision = self._handle(UNAUTHORIZED_CHARACTER, detection, window_start)
            if decision:
                return decision

        detection = detect_next_scene_keyword(
            window, scene.next_scene_keywords, self._resume_offset(NEXT_SCENE_LEAK, window_start)
        )
        if detection:
            decision = self._handle(NEXT_SCENE_LEAK, detection, window_start)
            if decision:
                return decision

        return ChunkDecision(should_continue=True, forwarded=chunk)

    def _resume_offset(self, category: str, window_start: int) -> int:
        return max(0, self._resume_at.get(category, 0) - window_start)

    def _handle(self, category: str, detection: Detection, window_start: int) -> Optional[ChunkDecision]:
        """Record a detection; under strict policy cut and stop."""
        position = window_start + detection.position
        detail = detection.subject or detection.description
        description = f"{_label(category)} detected"
        if detail:
            description += f": {detail}"

        violation = self._record(
            Violation(
                category=category,
                severity=detection.severity,
                position=position,
                description=description,
                detected_text=detection.matched_text,
            )
        )
        self._resume_at[category] = position + 1

        if not self.config.strict_mode:
            return None

        self._content = self._content[:position]
        reason = f"Stopped on {_label(category).lower()}"
        if detection.subject:
            reason += f": {detection.subject}"
        self._terminate(reason)
        return ChunkDecision(should_continue=False, violation=violation)

    def _record(self, violation: Violation) -> Violation:
        self._violations.append(violation)
        logger.warning("%s at %d: %r", violation.description, violation.position, violation.detected_text)
        if self.on_violation:
            self.on_violation(violation)
        return violation

    def _log_progress(self):
        if self._half_budget_logged:
            return
        threshold = relative_ceiling(self.config.scene.target_length, self.limits)
        if len(self._content) > threshold / 2:
            self._half_budget_logged = True
            logger.debug("Half of length threshold used (%d/%d)", len(self._content), threshold)

    def _terminate(self, reason: str):
        self._terminated = True
        self._termination_reason = reason
        self._result = self._snapshot()
        logger.info("Generation stopped: %s", reason)

    def _snapshot(self) -> GuardResult:
        return GuardResult(
            content=self._content,
            was_terminated=self._terminated,
            termination_reason=self._termination_reason,
            violations=tuple(self._violations),
            end_condition_reached=self._end_condition_reached,
        )

    def get_result(self) -> GuardResult:
        """Final result once terminated; a partial snapshot before that."""
        if self._result is not None:
            return self._result
        return self._snapshot()


def post_process_guard(
    text: str,
    config: GuardConfig,
    rules: Optional[RuleTable] = None,
    limits: Optional[GuardLimits] = None,
    strict_mode: bool = True,
) -> GuardResult:
    """Run the guard over text that has already been generated.

    The text is fed in half-window increments so that every part of it,
    including phrases spanning two increments, passes through the window.
    """
    config = config.model_copy(update={"strict_mode": strict_mode})
    guard = StreamGuard(config, rules=rules, limits=limits)
    step = max(1, guard.limits.window_size // 2)
    for start in range(0, len(text), step):
        decision = guard.process_chunk(text[start:start + step])
        if not decision.should_continue:
            break
    return guard.get_result()
