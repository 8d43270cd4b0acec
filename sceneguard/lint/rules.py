import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import List

import yaml
from pydantic import ValidationError

from sceneguard.models import Rule, RuleTable, TIME_JUMP, COMPRESSION

logger = logging.getLogger(__name__)


_TIME_JUMP_RULES = [
    (r"며칠\s*(이|가)?\s*(지나|흘러|후)", "Elapsed days"),
    (r"몇\s*달\s*(이|가)?\s*(지나|흘러|후)", "Elapsed months"),
    (r"몇\s*년\s*(이|가)?\s*(지나|흘러|후)", "Elapsed years"),
    (r"다음\s*날", "Next day"),
    (r"이튿날", "Next day"),
    (r"사흘\s*후", "Three days later"),
    (r"보름\s*후", "Fortnight later"),
    (r"한\s*달\s*후", "A month later"),
    (r"수\s*개월\s*후", "Months later"),
    (r"시간이\s*(흘러|지나)", "Time passing"),
    (r"세월이\s*(흘러|지나)", "Years passing"),
    (r"그로부터\s+\d+\s*(일|주|달|년)", "Explicit elapsed time"),
    (r"\d+\s*(일|주|달|년)\s*(이|가)?\s*(지나|흘러|후)", "Explicit elapsed time"),
    (r"어느덧", "Time passing"),
    (r"드디어.*때가", "Awaited moment arrives"),
    (r"(?i)\ba\s+few\s+(?:days|weeks|months|years)\s+later\b", "Elapsed time"),
    (r"(?i)\bthe\s+(?:next|following)\s+(?:morning|day|evening|night|week)\b", "Next day"),
    (r"(?i)\b(?:\d+|two|three|four|five|six|seven|eight|nine|ten|several|many)\s+"
     r"(?:days?|weeks?|months?|years?)\s+(?:later|passed|went\s+by)\b", "Explicit elapsed time"),
    (r"(?i)\b(?:days|weeks|months|years|seasons)\s+(?:passed|went\s+by|flew\s+by)\b", "Time passing"),
]

_COMPRESSION_RULES = [
    (r"결국", "Summary of outcome"),
    (r"마침내.*되었다", "Summary of outcome"),
    (r"드디어.*성공했다", "Summary of outcome"),
    (r"그렇게.*끝났다", "Summary of outcome"),
    (r"모든\s*것이.*끝", "Summary of outcome"),
    (r"전쟁이.*시작되", "Future event"),
    (r"임진왜란이", "Future event"),
    (r"왜군이.*침략", "Future event"),
    (r"일본군이.*상륙", "Future event"),
    (r"장면이\s*바뀌", "Scene transition"),
    (r"한편\s*그\s*시각", "Scene transition"),
    (r"같은\s*시각,?\s*다른", "Scene transition"),
    (r"그\s*시각,?\s*다른\s*곳에서", "Scene transition"),
    (r"(?i)\bin\s+the\s+end\b", "Summary of outcome"),
    (r"(?i)\bthus\s+it\s+became\s+(?:a\s+)?legend\b", "Summary of outcome"),
    (r"(?i)\band\s+so\s+it\s+(?:ended|was\s+over)\b", "Summary of outcome"),
    (r"(?i)\blittle\s+did\s+(?:he|she|they|anyone)\s+know\b", "Foreshadowing"),
    (r"(?i)\bmeanwhile,?\s+(?:elsewhere|across\s+town|far\s+away)\b", "Scene transition"),
    (r"(?i)\bat\s+(?:that|the)\s+same\s+moment,?\s+(?:elsewhere|far\s+away)\b", "Scene transition"),
]


def default_rule_table() -> RuleTable:
    """Built-in time-jump and compression rules."""
    rules = [
        Rule(pattern=p, category=TIME_JUMP, severity="critical", description=d)
        for p, d in _TIME_JUMP_RULES
    ]
    rules.extend(
        Rule(pattern=p, category=COMPRESSION, severity="critical", description=d)
        for p, d in _COMPRESSION_RULES
    )
    return RuleTable(rules=rules)


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def load_rule_table(path: Path) -> RuleTable:
    """Load rules from YAML file, falling back to the built-in table."""
    if not path.exists():
        return default_rule_table()

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    entries = data.get("rules") or []
    if not entries:
        return default_rule_table()

    rules: List[Rule] = []
    for entry in entries:
        try:
            rules.append(Rule.model_validate(entry))
        except ValidationError as e:
            logger.warning("Skipping invalid rule entry %r: %s", entry, e)

    return RuleTable(rules=rules)


def dump_rule_table(table: RuleTable, path: Path):
    """Write a rule table as YAML."""
    data = {"rules": [r.model_dump() for r in table.rules]}
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
