#!/usr/bin/env python3
"""Grant Forge CLI - generate and fill EU project proposal sections.

Usage:
    # Generate a section from scratch
    python main.py generate risks --project solar-coop --language en

    # Fill only what is still empty, across the whole document
    python main.py fill-missing --project solar-coop

    # Regenerate two list items in place
    python main.py generate outputs --project solar-coop --mode targeted-fill --indices 1,3

    # Show the compiled instruction without calling a model
    python main.py inspect activities --project solar-coop
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from config import settings
from contracts import GenerationMode, GenerationOutcome, Language
from orchestrator import DocumentSession, JsonDocumentStore
from pipeline import SectionGenerator, compile_prompt, compile_targeted_fill, section_value
from providers import get_provider, list_providers as get_available_providers
from rules import RuleRegistry, adapt_override, build_override_store, to_legacy_blob
from schemas import SectionKind


console = Console()

LANGUAGES = [language.value for language in Language]
MODES = [mode.value for mode in GenerationMode]
PROVIDER_CHOICES = ["litellm", "gemini", "openai", "openrouter", "anthropic"]


def rules_store():
    org_path = Path(settings.org_rules_override_path) if settings.org_rules_override_path else None
    return build_override_store(
        settings.get_rules_override_path(),
        org_path,
        ttl_seconds=settings.rules_cache_ttl_seconds,
    )


def parse_indices(value: Optional[str]) -> List[int]:
    """'1,3' -> [1, 3]."""
    if not value:
        return []
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise click.BadParameter(f"Indices must be comma-separated integers, got {value!r}")


def parse_path(value: str) -> List:
    """'risks.2.mitigation' -> ['risks', 2, 'mitigation']."""
    return [int(part) if part.isdigit() else part for part in value.split(".")]


def print_outcome(outcome: GenerationOutcome) -> None:
    if outcome.ok:
        retries = f" [dim](after {outcome.attempts} attempts)[/dim]" if outcome.attempts > 1 else ""
        console.print(f"  [green]✓[/green] {outcome.section_key} [dim]{outcome.mode.value}[/dim]{retries}")
    else:
        console.print(f"  [red]✗[/red] {outcome.section_key}: {outcome.error}")


def print_usage(generator: SectionGenerator) -> None:
    usage = generator.usage
    if not usage.calls:
        return
    console.print("\n[bold]Cost Summary:[/bold]")
    console.print(f"  Calls:         {usage.calls}")
    console.print(f"  Input tokens:  {usage.input_tokens:,}")
    console.print(f"  Output tokens: {usage.output_tokens:,}")
    console.print(f"  Total cost:    ${usage.cost:.4f}")


class CliContext:
    """Options shared by every command."""

    def __init__(self, project: str, language: str, provider: Optional[str], model: Optional[str], documents_dir: str):
        self.project = project
        self.language = Language(language)
        self.provider_name = provider
        self.model = model
        self.store = JsonDocumentStore(documents_dir)

    def generator(self) -> SectionGenerator:
        provider = get_provider(self.provider_name, self.model)
        return SectionGenerator(
            provider,
            rules_store=rules_store(),
            model=self.model,
            default_duration=settings.default_duration_months,
        )

    def session(self) -> DocumentSession:
        document = self.store.load(self.project, self.language)
        return DocumentSession(document, self.generator(), self.language)

    def save(self, session: DocumentSession) -> None:
        path = self.store.save(self.project, self.language, session.document)
        console.print(f"\n[bold]Document saved to:[/bold] {path}")


def run_with_spinner(description: str, coroutine):
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task(description, total=None)
        result = asyncio.run(coroutine)
        progress.update(task, completed=True)
    return result


@click.group()
@click.option("--project", "-P", default="default", help="Project id (document folder name)")
@click.option("--language", "-l", type=click.Choice(LANGUAGES), default=settings.default_language,
              help="Output language")
@click.option("--provider", "-p", type=click.Choice(PROVIDER_CHOICES), default=None,
              help=f"Model provider (default: {settings.provider})")
@click.option("--model", default=None, help="Model name (e.g. gemini/gemini-2.5-flash, gpt-4o)")
@click.option("--documents-dir", default=settings.documents_dir, help="Document storage directory")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx, project, language, provider, model, documents_dir, verbose):
    """Grant Forge: rule-governed generation of EU project proposals."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.obj = CliContext(project, language, provider, model, documents_dir)


@cli.command()
@click.argument("section")
@click.option("--mode", "-m", type=click.Choice(MODES), default="regenerate", help="Merge mode")
@click.option("--indices", default=None, help="Targeted-fill list indices, e.g. 1,3")
@click.option("--fields", default=None, help="Object-fill field names, e.g. mainAim,stateOfTheArt")
@click.pass_obj
def generate(obj: CliContext, section: str, mode: str, indices: Optional[str], fields: Optional[str]):
    """Generate one SECTION and merge it into the stored document."""
    session = obj.session()
    empty_indices = parse_indices(indices)
    empty_fields = [name.strip() for name in (fields or "").split(",") if name.strip()]
    if mode == GenerationMode.TARGETED_FILL.value and not empty_indices:
        raise click.UsageError("--mode targeted-fill needs --indices")

    console.print(Panel.fit(
        f"[bold blue]{section}[/bold blue]\n[dim]{mode} · {obj.language.display_name}[/dim]",
        border_style="blue",
    ))
    outcome = run_with_spinner(
        f"Generating {section}...",
        session.generate(section, mode, empty_indices=empty_indices, empty_fields=empty_fields),
    )
    print_outcome(outcome)
    print_usage(session.generator)
    if not outcome.ok:
        sys.exit(1)
    obj.save(session)


@cli.command("fill-missing")
@click.option("--mode", "-m", type=click.Choice(["fill", "enhance", "regenerate"]), default="fill")
@click.pass_obj
def fill_missing(obj: CliContext, mode: str):
    """Generate every section that is empty or incomplete."""
    session = obj.session()
    outcomes = run_with_spinner("Filling missing sections...", session.fill_missing(mode=mode))
    if not outcomes:
        console.print("[green]Nothing to fill: every section has content.[/green]")
        return
    console.print(f"\n[bold]Sections ({len(outcomes)}):[/bold]")
    for outcome in outcomes:
        print_outcome(outcome)
    print_usage(session.generator)
    obj.save(session)
    if not all(outcome.ok for outcome in outcomes):
        sys.exit(1)


@cli.command()
@click.option("--mode", "-m", type=click.Choice(["fill", "enhance", "regenerate"]), default="fill")
@click.pass_obj
def results(obj: CliContext, mode: str):
    """Generate the results chapter (outputs, outcomes, impacts, KERs)."""
    session = obj.session()
    outcomes = run_with_spinner("Generating results...", session.generate_results(mode))
    for outcome in outcomes:
        print_outcome(outcome)
    print_usage(session.generator)
    obj.save(session)
    if not all(outcome.ok for outcome in outcomes):
        sys.exit(1)


@cli.command()
@click.argument("path")
@click.pass_obj
def field(obj: CliContext, path: str):
    """Generate a single field at PATH (e.g. projectIdea.projectTitle or risks.2.mitigation)."""
    session = obj.session()
    outcome = run_with_spinner(f"Generating {path}...", session.generate_field(parse_path(path)))
    print_outcome(outcome)
    if not outcome.ok:
        sys.exit(1)
    console.print(f"\n{outcome.value}")
    obj.save(session)


@cli.command()
@click.option("--output", "-o", "output_path", default=None, help="Write the summary to a file")
@click.pass_obj
def summary(obj: CliContext, output_path: Optional[str]):
    """Print a condensed project summary."""
    session = obj.session()
    outcome = run_with_spinner("Summarising...", session.summarize())
    if not outcome.ok:
        print_outcome(outcome)
        sys.exit(1)
    if output_path:
        Path(output_path).write_text(outcome.value, encoding="utf-8")
        console.print(f"[bold]Summary saved to:[/bold] {output_path}")
    else:
        console.print(outcome.value)


@cli.command()
@click.argument("target", type=click.Choice(LANGUAGES))
@click.pass_obj
def translate(obj: CliContext, target: str):
    """Translate the document into TARGET and store it under that language."""
    if Language(target) is obj.language:
        raise click.UsageError("Target language equals the source language")
    session = obj.session()
    outcome = run_with_spinner(f"Translating to {Language(target).display_name}...", session.translate(target))
    print_outcome(outcome)
    print_usage(session.generator)
    if not outcome.ok:
        sys.exit(1)
    path = obj.store.save(obj.project, target, outcome.value)
    console.print(f"\n[bold]Translation saved to:[/bold] {path}")


@cli.group()
def rules():
    """Inspect and administer the generation rules."""


@rules.command("show")
@click.option("--chapter", default=None, help="Only show rules for this section key")
@click.pass_obj
def rules_show(obj: CliContext, chapter: Optional[str]):
    """Show the resolved rules for the selected language."""
    registry = RuleRegistry.for_language(obj.language, rules_store())
    console.print(f"[bold]Rules v{registry.version}[/bold] [dim]({obj.language.display_name})[/dim]\n")
    if chapter:
        console.print(registry.get_section_rules(chapter) or "[dim]No section rules[/dim]")
        console.print()
        console.print(registry.get_quality_gate(chapter))
        return
    console.print(registry.get_global_rules())
    table = Table(title="Chapters")
    table.add_column("Chapter")
    table.add_column("Kind")
    for name, block in (registry.rules.section_rules or {}).items():
        table.add_row(name, block.kind)
    console.print(table)


@rules.command("export")
@click.argument("output_path")
@click.option("--legacy", is_flag=True, help="Export in the flat legacy shape")
@click.pass_obj
def rules_export(obj: CliContext, output_path: str, legacy: bool):
    """Write the resolved rules to OUTPUT_PATH as JSON."""
    registry = RuleRegistry.for_language(obj.language, rules_store())
    blob = to_legacy_blob(registry.rules) if legacy else registry.rules.model_dump(mode="json")
    Path(output_path).write_text(json.dumps(blob, indent=2, ensure_ascii=False), encoding="utf-8")
    console.print(f"[green]Exported rules v{registry.version} to {output_path}[/green]")


@rules.command("import")
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def rules_import(obj: CliContext, input_path: str):
    """Validate INPUT_PATH and store it as the global rule override."""
    blob = json.loads(Path(input_path).read_text(encoding="utf-8"))
    rule_set = adapt_override(blob, obj.language)
    if rule_set is None:
        raise click.ClickException("Override carries no rules")
    rules_store().save(blob)
    console.print(f"[green]Stored rule override v{rule_set.version}[/green]")


@rules.command("reset")
@click.confirmation_option(prompt="Remove the custom rule override and use the built-in rules?")
def rules_reset():
    """Remove the stored rule override."""
    rules_store().clear()
    console.print("[green]Rule override removed; built-in rules are active.[/green]")


@cli.command()
def providers():
    """List model providers and whether they are configured."""
    console.print("[bold]Available LLM Providers:[/bold]\n")
    for name, available in get_available_providers().items():
        status = "[green]✓ Ready[/green]" if available else "[red]✗ No API key[/red]"
        console.print(f"  {name:12} {status}")
    console.print("\n[dim]Set API keys via environment variables:[/dim]")
    console.print("  GOOGLE_API_KEY, OPENAI_API_KEY, OPENROUTER_API_KEY, ANTHROPIC_API_KEY")
    console.print("  (or GRANT_FORGE_<PROVIDER>_API_KEY)")


@cli.command()
@click.argument("section")
@click.option("--mode", "-m", type=click.Choice(MODES), default="regenerate")
@click.option("--indices", default=None, help="Targeted-fill list indices")
@click.option("--native-schema", is_flag=True, help="Compile as for a provider with native schemas")
@click.pass_obj
def inspect(obj: CliContext, section: str, mode: str, indices: Optional[str], native_schema: bool):
    """Print the compiled instruction for SECTION without calling a model."""
    document = obj.store.load(obj.project, obj.language)
    registry = RuleRegistry.for_language(obj.language, rules_store())
    kind = SectionKind.from_key(section)
    if mode == GenerationMode.TARGETED_FILL.value:
        prompt = compile_targeted_fill(
            kind, document, obj.language, parse_indices(indices), registry=registry,
            native_schema=native_schema, default_duration=settings.default_duration_months,
        )
    else:
        prompt = compile_prompt(
            kind, document, obj.language, mode=mode, current_data=section_value(document, kind), registry=registry,
            native_schema=native_schema, default_duration=settings.default_duration_months,
        )
    console.print(Panel.fit(
        f"[bold]{prompt.section_key}[/bold] · max tokens {prompt.max_tokens} · "
        f"{'native schema' if prompt.native_schema else 'text schema hint'}",
        border_style="blue",
    ))
    console.print(prompt.instruction, markup=False, highlight=False)
    if prompt.response_schema:
        console.print("\n[bold]Response schema:[/bold]")
        console.print_json(json.dumps(prompt.response_schema))


if __name__ == "__main__":
    cli()
