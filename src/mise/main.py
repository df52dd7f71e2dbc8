"""
Mise - CLI Entry Point.

Usage:
    mise extract URL         Import a recipe from a URL
    mise parse FILE          Parse pasted recipe text from a file
    mise detect URL          Show what kind of source a URL is
    mise sites               List known recipe sites
    mise serve               Run the HTTP API
    mise health              Check configuration
    mise --help              Show help
"""

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner

app = typer.Typer(
    name="mise",
    help="Mise - Import recipes from websites, social posts, and pasted text.",
    add_completion=False,
)
console = Console()


def _print_result(result) -> None:
    """Human-readable summary of an ExtractionResult."""
    status = "[green]✅ Success[/green]" if result.success else "[red]❌ Failed[/red]"
    console.print(f"\n{status} via [bold]{result.method.value}[/bold] (confidence: {result.confidence:.2f})")
    if result.processing_time_ms is not None:
        console.print(f"[dim]{result.processing_time_ms}ms[/dim]")
    if result.ai_tokens_used:
        console.print(f"[dim]AI tokens used: {result.ai_tokens_used}[/dim]")
    if result.error:
        console.print(f"[red]Error: {result.error}[/red]")

    recipe = result.candidate
    if recipe is None:
        if result.fallback_message:
            console.print(f"\n[yellow]{result.fallback_message}[/yellow]")
        return

    if not result.success:
        console.print("\n[dim]Partial data salvaged:[/dim]")

    details = []
    if recipe.prep_time_minutes is not None:
        details.append(f"prep {recipe.prep_time_minutes} min")
    if recipe.cook_time_minutes is not None:
        details.append(f"cook {recipe.cook_time_minutes} min")
    if recipe.servings is not None:
        details.append(f"serves {recipe.servings}")

    body = recipe.description or ""
    if details:
        body = f"{body}\n\n[dim]{' · '.join(details)}[/dim]" if body else f"[dim]{' · '.join(details)}[/dim]"
    console.print(Panel.fit(body or "[dim]No description[/dim]", title=recipe.title, border_style="green"))

    for component in recipe.components:
        console.print(f"\n[bold blue]{component.name.upper()}[/bold blue]")
        for ing in component.ingredients:
            amount = " ".join(
                part for part in (f"{ing.quantity:g}" if ing.quantity is not None else "", ing.unit or "") if part
            )
            notes = f" [dim]({ing.notes})[/dim]" if ing.notes else ""
            console.print(f"  • {amount + ' ' if amount else ''}{ing.name}{notes}")
        for step in component.steps:
            console.print(f"  {step.order}. {step.instruction}")

    if result.fallback_message:
        console.print(f"\n[yellow]{result.fallback_message}[/yellow]")


@app.command()
def extract(
    url: str = typer.Argument(..., help="Recipe page, social post, or PDF URL"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON"),
    fallback_file: Path | None = typer.Option(
        None, "--fallback", "-f", help="Text file parsed if URL extraction fails"
    ),
) -> None:
    """Import a recipe from a URL."""
    from mise.config import setup_logging
    from mise.recipe_import import get_default_pipeline, validate_url

    setup_logging("WARNING")

    error = validate_url(url)
    if error:
        console.print(f"[red]❌ {error}[/red]")
        raise typer.Exit(1)

    fallback_content = fallback_file.read_text(encoding="utf-8") if fallback_file else None

    with Live(Spinner("dots", text="Extracting..."), console=console, transient=True):
        result = asyncio.run(
            get_default_pipeline().extract_from_url(url.strip(), fallback_content=fallback_content)
        )

    if as_json:
        console.print_json(json.dumps(result.to_dict(), default=str))
    else:
        _print_result(result)

    if not result.success:
        raise typer.Exit(1)


@app.command()
def parse(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File containing recipe text"),
    source_url: str | None = typer.Option(None, "--source-url", help="Where the text came from"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON"),
) -> None:
    """Parse pasted recipe text with the AI."""
    from mise.config import settings, setup_logging
    from mise.recipe_import import get_default_pipeline

    setup_logging("WARNING")

    content = file.read_text(encoding="utf-8")
    length = len(content.strip())
    if not settings.content_min_chars <= length <= settings.content_max_chars:
        console.print(
            f"[red]❌ Content must be between {settings.content_min_chars} and "
            f"{settings.content_max_chars} characters (got {length})[/red]"
        )
        raise typer.Exit(1)

    with Live(Spinner("dots", text="Parsing..."), console=console, transient=True):
        result = asyncio.run(get_default_pipeline().parse_content(content, source_url=source_url))

    if as_json:
        console.print_json(json.dumps(result.to_dict(), default=str))
    else:
        _print_result(result)

    if not result.success:
        raise typer.Exit(1)


@app.command()
def detect(url: str = typer.Argument(..., help="URL to classify")) -> None:
    """Show how a URL would be routed, without fetching it."""
    from mise.recipe_import import detect_source, validate_url

    error = validate_url(url)
    if error:
        console.print(f"[red]❌ {error}[/red]")
        raise typer.Exit(1)

    detection = detect_source(url.strip())
    console.print(f"Source: [bold]{detection.source.value}[/bold]")
    if detection.is_known_recipe_site:
        console.print(f"Known recipe site: {detection.site_name}")


@app.command()
def sites() -> None:
    """List known recipe sites."""
    from mise.recipe_import import get_known_recipe_sites

    known = get_known_recipe_sites()
    console.print("\n[bold]Known Recipe Sites[/bold]\n")
    for site in sorted(known, key=lambda s: s["name"].lower()):
        console.print(f"  • {site['name']} [dim]({site['domain']})[/dim]")
    console.print(f"\n[dim]Total: {len(known)} sites[/dim]")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from mise.config import settings

    console.print(f"[green]Starting Mise API on http://{host}:{port}[/green]")
    uvicorn.run(
        "mise.web.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command()
def health() -> None:
    """Check system health and configuration."""
    from mise.config import get_settings

    console.print("\n[bold]Mise Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("✅ Configuration loaded")
        console.print(f"   Environment: {settings.mise_env}")
        console.print(f"   Log level: {settings.log_level}")

        # Check OpenAI
        if not settings.openai_api_key:
            console.print("ℹ️  OpenAI API key not set (AI fallback disabled)")
        elif settings.openai_api_key.startswith("sk-"):
            console.print(f"✅ OpenAI API key configured (model: {settings.openai_model})")
        else:
            console.print("⚠️  OpenAI API key may be invalid")

        # Check import logging
        if not settings.mise_log_imports:
            console.print("ℹ️  Import logging disabled")
        elif settings.supabase_enabled:
            console.print(f"✅ Import log: {settings.import_log_dir}/ and Supabase table {settings.import_log_table}")
        else:
            console.print(f"✅ Import log: {settings.import_log_dir}/")

        console.print("\n[green]All checks passed![/green]")

    except Exception as e:
        console.print(f"\n[red]❌ Configuration error: {e}[/red]")
        console.print("[dim]Check your .env file and environment variables.[/dim]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from mise import __version__

    console.print(f"Mise version {__version__}")


if __name__ == "__main__":
    app()
