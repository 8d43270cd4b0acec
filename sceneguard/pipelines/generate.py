from pathlib import Path
from typing import Callable, Optional
import yaml

import sceneguard.config as _cfg
from sceneguard.models import GuardConfig, GuardLimits, Violation
from sceneguard.providers import get_provider
from sceneguard.lint.rules import load_rule_table
from sceneguard.stream.guard import StreamGuard
from sceneguard.stream.adapter import GuardedStream


def load_guard_config(scene_path: Path) -> GuardConfig:
    """Load scene boundaries, roster and policy from YAML."""
    if not scene_path.exists():
        return GuardConfig()

    with open(scene_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return GuardConfig(**data)


def build_guard(
    scene_path: Path,
    workspace_root: Path,
    on_violation: Optional[Callable[[Violation], None]] = None,
) -> StreamGuard:
    """Guard for one session, configured from the workspace."""
    config = load_guard_config(scene_path)
    rules = load_rule_table(workspace_root / "rules.yaml")
    limits = GuardLimits.from_settings(_cfg.settings)
    return StreamGuard(config, rules=rules, limits=limits, on_violation=on_violation)


async def generate_scene(
    prompt: str,
    scene_path: Optional[Path] = None,
    workspace_root: Optional[Path] = None,
    on_chunk: Optional[Callable[[str], None]] = None,
    on_violation: Optional[Callable[[Violation], None]] = None,
) -> dict:
    """Stream a scene from the configured provider through the guard."""
    workspace_root = workspace_root or _cfg.settings.workspace_root
    scene_path = scene_path or workspace_root / "scene.yaml"

    guard = build_guard(scene_path, workspace_root, on_violation=on_violation)

    _cfg.settings.validate_provider()
    provider = get_provider(
        _cfg.settings.provider,
        _cfg.settings.api_key(),
        _cfg.settings.model_name,
    )

    stream = GuardedStream(provider.stream(prompt, max_tokens=_cfg.settings.max_tokens), guard)
    forwarded = []
    async for chunk in stream:
        forwarded.append(chunk)
        if on_chunk:
            on_chunk(chunk)

    return {
        "content": "".join(forwarded),
        "result": stream.result,
    }
