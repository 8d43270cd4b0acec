from pathlib import Path
from typing import Optional

import sceneguard.config as _cfg
from sceneguard.models import GuardLimits, GuardResult
from sceneguard.lint.rules import load_rule_table
from sceneguard.pipelines.generate import load_guard_config
from sceneguard.stream.guard import post_process_guard


def check_text(
    text: str,
    scene_path: Optional[Path] = None,
    workspace_root: Optional[Path] = None,
    strict_mode: bool = True,
) -> GuardResult:
    """Run the guard over already generated text."""
    workspace_root = workspace_root or _cfg.settings.workspace_root
    scene_path = scene_path or workspace_root / "scene.yaml"

    config = load_guard_config(scene_path)
    rules = load_rule_table(workspace_root / "rules.yaml")
    limits = GuardLimits.from_settings(_cfg.settings)

    return post_process_guard(text, config, rules=rules, limits=limits, strict_mode=strict_mode)
