"""Tests for sceneguard.lint.end_condition — end-condition matching."""
import pytest
from sceneguard.lint.end_condition import (
    extract_keywords,
    match_end_condition,
    match_keywords,
    match_dialogue,
    FALLBACK_MATCH_LENGTH,
)


# ── extract_keywords ────────────────────────────────────────────────
class TestExtractKeywords:
    def test_strips_punctuation_and_short_tokens(self):
        assert extract_keywords("He closed a door.") == ["He", "closed", "door"]

    def test_deduplicates_in_order(self):
        assert extract_keywords("door, door, open door!") == ["door", "open"]

    def test_quotes_removed(self):
        assert extract_keywords('"이제 끝이야" 그녀가 말했다') == ["이제", "끝이야", "그녀가", "말했다"]

    def test_empty(self):
        assert extract_keywords("") == []


# ── match_end_condition ─────────────────────────────────────────────
class TestExactMatch:
    def test_korean_exact(self):
        window = "비가 내렸다. 그는 문을 닫았다. 그리고 돌아섰다."
        end = "그는 문을 닫았다."
        result = match_end_condition(window, end)
        assert result.reached
        assert result.position == window.index(end)
        assert result.match_length == len(end)

    def test_first_occurrence(self):
        end = "She nodded."
        window = "She nodded. Then again, She nodded."
        assert match_end_condition(window, end).position == 0

    def test_exact_wins_over_fuzzy(self):
        end = "He closed the door."
        window = "The door stood open. He closed the door. Later he closed it again, the door."
        result = match_end_condition(window, end)
        assert result.position == window.index(end)
        assert result.match_length == len(end)


class TestEmptyCondition:
    @pytest.mark.parametrize("end", ["", None])
    def test_never_reached(self, end):
        result = match_end_condition("anything at all. closed the door.", end)
        assert not result.reached
        assert result.position is None


class TestFuzzyMatch:
    def test_ratio_reached(self):
        end = "Mara finally closed the heavy door"
        window = "Mara closed the heavy door slowly. Then she waited"
        result = match_end_condition(window, end)
        assert result.reached
        door = window.index("door")
        assert result.position == door
        assert result.match_length == window.index(".") + 1 - door

    def test_below_ratio(self):
        end = "Mara finally closed the heavy door"
        window = "Mara closed something quietly"
        assert not match_end_condition(window, end).reached

    def test_two_tokens_never_fuzzy(self):
        end = "문을 닫았다"
        window = "닫았다고 했지만 문을 보니 열려 있었다"
        assert not match_end_condition(window, end).reached

    def test_two_tokens_exact_still_matches(self):
        assert match_end_condition("그가 문을 닫았다.", "문을 닫았다").reached

    def test_last_occurrence_wins(self):
        end = "open the old door"
        window = "The old door. I open the door again and wait"
        result = match_end_condition(window, end)
        assert result.reached
        assert result.position == window.rfind("door")

    def test_no_terminator_uses_fixed_span(self):
        result = match_keywords("alpha beta gamma and more", ["alpha", "beta", "gamma"])
        assert result.reached
        assert result.match_length == FALLBACK_MATCH_LENGTH

    def test_terminator_beyond_span_ignored(self):
        window = "alpha beta gamma" + " x" * 150 + "."
        result = match_keywords(window, ["alpha", "beta", "gamma"])
        assert result.match_length == FALLBACK_MATCH_LENGTH

    def test_other_terminators(self):
        window = "alpha beta gamma, really?! yes"
        result = match_keywords(window, ["alpha", "beta", "gamma"])
        assert result.position + result.match_length == window.index("?") + 1


class TestDialogueFallback:
    END = '마라가 "이제 끝이야"라고 말했다'
    WINDOW = '테오가 고개를 들었다. "이제 끝이야." 그녀가 속삭였다.'

    def test_dialogue_type_matches_quote(self):
        result = match_end_condition(self.WINDOW, self.END, "dialogue")
        assert result.reached
        assert result.position == self.WINDOW.index("이제 끝이야")
        assert result.match_length == len("이제 끝이야")

    def test_other_types_skip_fallback(self):
        assert not match_end_condition(self.WINDOW, self.END, "narration").reached
        assert not match_end_condition(self.WINDOW, self.END, "action").reached

    def test_curly_quotes(self):
        result = match_dialogue("He said: We leave at dawn. Nobody moved.", "He says “We leave at dawn”")
        assert result.reached

    def test_no_quotes(self):
        assert not match_dialogue("We leave at dawn.", "We leave at dawn").reached
