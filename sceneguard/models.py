import re
from typing import Optional, List, Tuple, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator


Severity = Literal["warning", "critical"]
EndConditionType = Literal["dialogue", "action", "narration"]

TIME_JUMP = "time_jump"
COMPRESSION = "compression"
UNAUTHORIZED_CHARACTER = "unauthorized_character"
NEXT_SCENE_LEAK = "next_scene_leak"
SCOPE_EXCEEDED = "scope_exceeded"


class SceneDescriptor(BaseModel):
    """Boundaries of the scene being generated."""
    model_config = ConfigDict(frozen=True)

    end_condition: str = ""
    end_condition_type: EndConditionType = "narration"
    target_length: Optional[int] = None
    participants: List[str] = Field(default_factory=list)
    next_scene_keywords: List[str] = Field(default_factory=list)


class GuardConfig(BaseModel):
    """Everything one guarded generation session is built from."""
    scene: SceneDescriptor = Field(default_factory=SceneDescriptor)
    character_roster: List[str] = Field(default_factory=list)
    strict_mode: bool = True


class GuardLimits(BaseModel):
    """Window size and length ceilings applied by the guard."""
    model_config = ConfigDict(frozen=True)

    window_size: int = 1000
    absolute_max_length: int = 6000
    relative_ceiling_ratio: float = 0.6
    end_marker: str = "\n\n---"

    @classmethod
    def from_settings(cls, settings) -> "GuardLimits":
        return cls(
            window_size=settings.window_size,
            absolute_max_length=settings.absolute_max_length,
            relative_ceiling_ratio=settings.relative_ceiling_ratio,
            end_marker=settings.end_marker,
        )


class Violation(BaseModel):
    """A single boundary violation, positioned in the accumulated text."""
    model_config = ConfigDict(frozen=True)

    category: str
    severity: Severity
    position: int
    description: str
    detected_text: str = ""


class GuardResult(BaseModel):
    """Snapshot of a guard session."""
    model_config = ConfigDict(frozen=True)

    content: str
    was_terminated: bool
    termination_reason: Optional[str] = None
    violations: Tuple[Violation, ...] = ()
    end_condition_reached: bool = False


class MatchResult(BaseModel):
    reached: bool
    position: Optional[int] = None
    match_length: int = 0


class Detection(BaseModel):
    """A detector hit; position is relative to the inspected window."""
    position: int
    matched_text: str
    subject: str = ""
    description: str = ""
    severity: Severity = "critical"


class ChunkDecision(BaseModel):
    should_continue: bool
    forwarded: str = ""
    violation: Optional[Violation] = None


class Rule(BaseModel):
    """One entry of the rule table."""
    pattern: str
    category: str
    severity: Severity = "critical"
    description: str = ""

    @field_validator("pattern")
    @classmethod
    def pattern_compiles(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid regex {v!r}: {e}")
        return v


class RuleTable(BaseModel):
    """Ordered pattern rules, grouped by category at lookup time."""
    rules: List[Rule] = Field(default_factory=list)

    def for_category(self, category: str) -> List[Rule]:
        return [r for r in self.rules if r.category == category]

    def categories(self) -> List[str]:
        seen = []
        for r in self.rules:
            if r.category not in seen:
                seen.append(r.category)
        return seen
