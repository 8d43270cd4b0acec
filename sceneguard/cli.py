import asyncio
import logging

import click
import yaml
from pathlib import Path
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from sceneguard.config import settings
from sceneguard.models import GuardResult
from sceneguard.lint.rules import default_rule_table, dump_rule_table
from sceneguard.pipelines.check import check_text
from sceneguard.pipelines.generate import generate_scene

console = Console()


def configure_logging(level: str):
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def create_workspace(workspace_root: Path):
    """Initialize workspace with starter files."""
    workspace_root.mkdir(exist_ok=True)
    (workspace_root / "outputs").mkdir(exist_ok=True)

    scene_path = workspace_root / "scene.yaml"
    if not scene_path.exists():
        starter_scene = {
            "scene": {
                "end_condition": "She closed the door behind her.",
                "end_condition_type": "action",
                "target_length": 3000,
                "participants": ["Mara", "Theo"],
                "next_scene_keywords": ["harbor", "the letter from Vell"],
            },
            "character_roster": ["Mara", "Theo", "Iven", "Captain Ros"],
            "strict_mode": True,
        }
        with open(scene_path, "w", encoding="utf-8") as f:
            yaml.dump(starter_scene, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
        console.print(f"[green]✓[/green] Created {scene_path}")

    rules_path = workspace_root / "rules.yaml"
    if not rules_path.exists():
        dump_rule_table(default_rule_table(), rules_path)
        console.print(f"[green]✓[/green] Created {rules_path}")

    console.print(f"[green]✓[/green] Workspace ready: {workspace_root}")


def write_report(result: GuardResult, path: Path):
    """Write a markdown summary of a guard result."""
    with open(path, "w", encoding="utf-8") as f:
        f.write("# Guard Report\n\n")
        f.write(f"- Terminated: {'yes' if result.was_terminated else 'no'}\n")
        if result.termination_reason:
            f.write(f"- Reason: {result.termination_reason}\n")
        f.write(f"- End condition reached: {'yes' if result.end_condition_reached else 'no'}\n")
        f.write(f"- Length: {len(result.content)}\n\n")
        f.write("## Violations\n\n")
        if result.violations:
            for v in result.violations:
                f.write(f"- **{v.category}** ({v.severity}) at {v.position}: {v.description}\n")
                if v.detected_text:
                    f.write(f"  > {v.detected_text}\n")
        else:
            f.write("None.\n")


def print_result(result: GuardResult):
    if result.violations:
        console.print("\n[bold red]Violations:[/bold red]")
        for v in result.violations:
            severity_color = "red" if v.severity == "critical" else "yellow"
            console.print(f"  [{severity_color}]{v.severity.upper()}[/{severity_color}] @{v.position} {escape(v.description)}")
            if v.detected_text:
                console.print(f"    > {escape(v.detected_text)}")
    else:
        console.print("[green]No violations found.[/green]")

    if result.end_condition_reached:
        console.print("[green]End condition reached.[/green]")
    if result.was_terminated:
        console.print(f"[yellow]Stopped:[/yellow] {escape(result.termination_reason)}")


@click.group()
@click.option("--log-level", default=None, help="Logging level (defaults to LOG_LEVEL)")
def cli(log_level):
    """SceneGuard: keep streamed scene generation inside its boundaries."""
    configure_logging(log_level or settings.log_level)


@cli.command()
def init():
    """Initialize workspace."""
    try:
        create_workspace(settings.workspace_root)
        console.print("[green]Initialization complete.[/green]")
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.exceptions.Exit(1)


@cli.command()
@click.argument("text_file", type=click.Path(exists=True))
@click.option("--scene", "scene_file", type=click.Path(exists=True), default=None, help="Scene YAML file")
@click.option("--lenient", is_flag=True, help="Record violations without truncating")
@click.option("--fail-on-violation", is_flag=True, help="Exit with error if any violation is found")
def check(text_file, scene_file, lenient, fail_on_violation):
    """Run the guard over an already generated text file."""
    try:
        text = Path(text_file).read_text(encoding="utf-8")
        scene_path = Path(scene_file) if scene_file else None

        result = check_text(text, scene_path, settings.workspace_root, strict_mode=not lenient)
        print_result(result)
        console.print(f"\n[yellow]Kept:[/yellow] {len(result.content)}/{len(text)} chars")

        if fail_on_violation and result.violations:
            raise click.exceptions.Exit(1)
    except click.exceptions.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.exceptions.Exit(1)


@cli.command()
@click.argument("prompt_file", type=click.Path(exists=True))
@click.option("--scene", "scene_file", type=click.Path(exists=True), default=None, help="Scene YAML file")
def generate(prompt_file, scene_file):
    """Stream a scene from the model through the guard."""
    try:
        prompt_path = Path(prompt_file)
        prompt = prompt_path.read_text(encoding="utf-8")
        scene_path = Path(scene_file) if scene_file else None

        console.print("[blue]Generating...[/blue]")
        output = asyncio.run(
            generate_scene(
                prompt,
                scene_path,
                settings.workspace_root,
                on_chunk=lambda chunk: console.print(chunk, end="", markup=False, highlight=False),
            )
        )
        result = output["result"]
        console.print()

        output_dir = settings.workspace_root / "outputs"
        output_dir.mkdir(parents=True, exist_ok=True)

        text_path = output_dir / f"{prompt_path.stem}_guarded.md"
        with open(text_path, "w", encoding="utf-8") as f:
            f.write(result.content)

        report_path = output_dir / f"{prompt_path.stem}_guard_report.md"
        write_report(result, report_path)

        print_result(result)
        console.print(f"[green]✓[/green] Text: {text_path}")
        console.print(f"[green]✓[/green] Report: {report_path}")
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.exceptions.Exit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
