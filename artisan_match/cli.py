"""
Artisan Match Command Line Interface

Provides CLI commands for enriching and indexing artisan profiles and for
searching, finding similar artisans and generating recommendations.
"""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="artisan-match",
    help="Semantic artisan matching CLI",
    add_completion=False,
)
console = Console()


def _load_json(path: Path) -> list:
    if not path.exists():
        console.print(f"[red]Error: File not found: {path}[/red]")
        raise typer.Exit(1)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: Invalid JSON in {path}: {e}[/red]")
        raise typer.Exit(1)

    if not isinstance(data, list):
        console.print("[red]Error: Expected a JSON array[/red]")
        raise typer.Exit(1)
    return data


def _load_profiles(path: Path):
    from pydantic import ValidationError
    from artisan_match.data.models import ArtisanProfile

    try:
        return [ArtisanProfile.model_validate(item) for item in _load_json(path)]
    except ValidationError as e:
        console.print(f"[red]Error: Invalid profile data: {e}[/red]")
        raise typer.Exit(1)


def _print_results(results, title: str) -> None:
    if not results:
        console.print("[yellow]No matching artisans found.[/yellow]")
        return

    table = Table(title=title)
    table.add_column("Rank", style="dim", justify="right")
    table.add_column("Artisan", style="cyan")
    table.add_column("Name")
    table.add_column("Similarity", style="green", justify="right")
    table.add_column("Reasons", style="dim")

    for result in results:
        reasons = ", ".join(result.explanation.match_reasons) if result.explanation else ""
        table.add_row(
            str(result.rank),
            result.artisan_id,
            str(result.metadata.get("name", "")),
            f"{result.similarity:.3f}",
            reasons,
        )

    console.print(table)


@app.command()
def version():
    """Show application version."""
    from artisan_match import __version__, __app_name__

    console.print(f"[bold blue]{__app_name__}[/bold blue] version [green]{__version__}[/green]")


@app.command()
def info():
    """Show configuration."""
    from artisan_match.utils.config import get_settings

    settings = get_settings()

    table = Table(title="Artisan Match Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Environment", settings.environment)
    table.add_row("Debug Mode", str(settings.debug))
    table.add_row("Embedding Provider", settings.embedding.provider)
    table.add_row("Embedding Model", settings.embedding.model)
    table.add_row("Local Model", settings.embedding.local_model)
    table.add_row("Dimension", str(settings.embedding.dimension))
    table.add_row(
        "Fusion Weights",
        f"{settings.fusion.profile_weight}/{settings.fusion.skills_weight}/{settings.fusion.portfolio_weight}",
    )
    table.add_row("Vector Index", f"{settings.vector_store.provider} ({settings.vector_store.index_name})")
    table.add_row("Index Metric", settings.vector_store.metric)
    table.add_row("Search Cache TTL", f"{settings.search.cache_ttl_seconds:.0f}s")
    table.add_row("Log Level", settings.logging.level)

    console.print(table)


@app.command()
def enrich(
    profiles_file: Path = typer.Argument(..., help="JSON array of artisan profiles"),
):
    """Run the enrichment pipeline over profiles and show the result."""
    from artisan_match.ml.nlp import get_enrichment_pipeline

    profiles = _load_profiles(profiles_file)
    pipeline = get_enrichment_pipeline()

    table = Table(title="Enriched Profiles")
    table.add_column("Artisan", style="cyan")
    table.add_column("Keywords")
    table.add_column("Inferred Skills")
    table.add_column("Price Band")
    table.add_column("Confidence", style="green", justify="right")
    table.add_column("Failed", style="red")

    for enriched in pipeline.enrich_profiles(profiles):
        table.add_row(
            enriched.artisan_id,
            ", ".join(enriched.extracted_keywords[:5]),
            ", ".join(enriched.inferred_skills[:5]),
            enriched.market_positioning.price_category,
            f"{enriched.confidence:.2f}",
            ", ".join(enriched.failed_analyzers),
        )

    console.print(table)


@app.command()
def index(
    profiles_file: Path = typer.Argument(..., help="JSON array of artisan profiles"),
    force: bool = typer.Option(False, "--force", "-f", help="Re-index unchanged profiles"),
):
    """Enrich, embed and upsert profiles into the vector index."""
    from artisan_match.core.matching import get_matching_service
    from artisan_match.ml.embeddings import FAISSVectorIndex
    from rich.progress import Progress, SpinnerColumn, TextColumn

    profiles = _load_profiles(profiles_file)
    console.print(f"Found [cyan]{len(profiles)}[/cyan] profile(s)")

    service = get_matching_service()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Indexing profiles...", total=None)
        try:
            if service.ensure_index():
                console.print(f"  [green]✓[/green] Created index {service.index.index_name}")
            report = service.index_profiles(profiles, force=force)
            if isinstance(service.index, FAISSVectorIndex):
                service.index.save()
            progress.update(task, description="[green]✓[/green] Indexing finished")
        except Exception as e:
            progress.update(task, description=f"[red]✗[/red] Indexing failed: {e}")
            raise typer.Exit(1)

    console.print()
    console.print("[bold]Index Summary:[/bold]")
    console.print(f"  [green]✓ Indexed:[/green] {len(report.indexed)}")
    console.print(f"  [dim]- Unchanged:[/dim] {len(report.skipped)}")
    console.print(f"  [red]✗ Failed:[/red] {len(report.failed)}")

    for artisan_id, error in list(report.failed.items())[:10]:
        console.print(f"  [dim]{artisan_id}:[/dim] {error}")


@app.command()
def query(
    text: str = typer.Argument(..., help="Search query"),
):
    """Show how a search query is cleaned, classified and expanded."""
    from artisan_match.ml.nlp import get_query_processor

    processor = get_query_processor()
    processed = processor.process_query(text)

    table = Table(title="Processed Query")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Cleaned", processed.cleaned_query)
    table.add_row("Concepts", ", ".join(processed.extracted_concepts))
    table.add_row("Type", processed.query_type.value)
    table.add_row("Expanded", processed.expanded_query)
    table.add_row("Confidence", f"{processed.confidence:.2f}")
    table.add_row("Intent Clarity", f"{processed.metadata.intent_clarity:.2f}")
    table.add_row("Specificity", f"{processed.metadata.specificity_score:.2f}")
    table.add_row("Valid", str(processor.validate_processed_query(processed)))

    console.print(table)

    suggestions = processor.get_expansion_suggestions(text)
    if suggestions:
        console.print(f"\n[bold]Suggestions:[/bold] {', '.join(suggestions)}")


@app.command()
def search(
    text: str = typer.Argument(..., help="Search query"),
    top_k: int = typer.Option(10, "--top-k", "-k", help="Number of results"),
    mode: str = typer.Option("approximate", "--mode", "-m", help="exact, approximate or hybrid"),
    verified_only: bool = typer.Option(False, "--verified-only", help="Only verified artisans"),
    min_rating: Optional[float] = typer.Option(None, "--min-rating", help="Minimum customer rating"),
    threshold: Optional[float] = typer.Option(None, "--threshold", "-t", help="Minimum similarity"),
):
    """Search artisans with a free-text query."""
    from artisan_match.core.matching import SearchFilters, get_matching_service
    from artisan_match.utils.constants import SearchMode

    try:
        search_mode = SearchMode(mode)
    except ValueError:
        console.print(f"[red]Error: Unknown mode '{mode}'[/red]")
        raise typer.Exit(1)

    service = get_matching_service()
    filters = SearchFilters(verified_only=verified_only, min_rating=min_rating)

    try:
        response = service.search(text, top_k=top_k, threshold=threshold, filters=filters, mode=search_mode)
    except Exception as e:
        console.print(f"[red]Error searching: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[dim]Expanded query: {response.query.expanded_query}[/dim]")
    _print_results(response.results, f"Results for '{text}'")
    console.print(f"[dim]{response.metrics.search_time_ms:.1f}ms[/dim]")


@app.command()
def similar(
    artisan_id: str = typer.Argument(..., help="Artisan ID"),
    top_k: int = typer.Option(10, "--top-k", "-k", help="Number of results"),
):
    """Find artisans similar to an indexed artisan."""
    from artisan_match.core.exceptions import VectorNotFoundError
    from artisan_match.core.matching import get_matching_service

    service = get_matching_service()
    try:
        results = service.find_similar_artisans(artisan_id, top_k)
    except VectorNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    _print_results(results, f"Artisans similar to {artisan_id}")


@app.command()
def recommend(
    history_file: Path = typer.Argument(..., help="JSON array of interaction records"),
    top_k: int = typer.Option(20, "--top-k", "-k", help="Number of results"),
):
    """Recommend artisans from an interaction history."""
    from pydantic import ValidationError
    from artisan_match.core.exceptions import VectorNotFoundError
    from artisan_match.core.matching import get_matching_service
    from artisan_match.data.models import InteractionRecord

    try:
        history = [InteractionRecord.model_validate(item) for item in _load_json(history_file)]
    except ValidationError as e:
        console.print(f"[red]Error: Invalid interaction data: {e}[/red]")
        raise typer.Exit(1)

    service = get_matching_service()
    try:
        results = service.get_recommendations(history, top_k)
    except (VectorNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    _print_results(results, "Recommended Artisans")


if __name__ == "__main__":
    app()
