"""Command-line interface for the PubMed assistant."""

import asyncio
import logging
from pathlib import Path

import click

from pubmed_assistant.config import get_settings
from pubmed_assistant.data_sources.pubmed import PubMedClient
from pubmed_assistant.models.model_pubmed import SearchResult
from pubmed_assistant.services.refinement import RefinementType, refine_mesh_terms
from pubmed_assistant.services.term_converter import convert_to_mesh_terms


async def _run_search(mesh_terms: str, max_results: int) -> SearchResult:
    async with PubMedClient() as client:
        return await client.search(mesh_terms, max_results)


def _echo_result(result: SearchResult, output: str | None) -> None:
    click.echo(f"Search terms: {result.mesh_terms}")
    click.echo(f"Total results: {result.total_results}  ({result.search_url})")

    for i, paper in enumerate(result.papers, 1):
        click.echo(f"\n  {i}. {paper.title}")
        click.echo(f"     {paper.author_line}")
        click.echo(f"     {paper.journal}, {paper.publication_date}  {paper.url}")

    if output:
        Path(output).write_text(result.model_dump_json(by_alias=True, indent=2))
        click.echo(f"\nResults saved to: {output}")


@click.group()
@click.version_option(package_name="pubmed-assistant")
@click.option("-v", "--verbose", is_flag=True, help="Log at DEBUG level")
def main(verbose: bool):
    """PubMed assistant: search and refine PubMed from the command line."""
    level = "DEBUG" if verbose else get_settings().log_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s %(message)s")


@main.command()
@click.argument("query")
def convert(query: str):
    """Print the search terms a QUERY converts to."""
    click.echo(convert_to_mesh_terms(query))


@main.command()
@click.argument("query")
@click.option(
    "-n",
    "--max-results",
    default=lambda: get_settings().default_max_results,
    show_default="5",
    type=click.IntRange(min=1),
    help="Number of papers to fetch",
)
@click.option("-o", "--output", type=click.Path(), help="Output file path (JSON)")
def search(query: str, max_results: int, output: str | None):
    """Search PubMed for QUERY."""
    mesh_terms = convert_to_mesh_terms(query)
    if not mesh_terms:
        raise click.BadParameter("no usable search terms", param_hint="QUERY")
    _echo_result(asyncio.run(_run_search(mesh_terms, max_results)), output)


@main.command()
@click.argument("mesh_terms")
@click.option(
    "-t",
    "--type",
    "refinement_type",
    required=True,
    type=click.Choice([t.value for t in RefinementType]),
    help="increase (broaden), decrease (narrow) or keep",
)
@click.option("-c", "--criteria", help="Extra criteria to narrow with")
@click.option("-q", "--query", "original_query", default="", help="Original query")
@click.option(
    "-n",
    "--max-results",
    default=lambda: get_settings().default_max_results,
    show_default="5",
    type=click.IntRange(min=1),
    help="Number of papers to fetch",
)
@click.option("-o", "--output", type=click.Path(), help="Output file path (JSON)")
def refine(
    mesh_terms: str,
    refinement_type: str,
    criteria: str | None,
    original_query: str,
    max_results: int,
    output: str | None,
):
    """Refine previous MESH_TERMS and search again."""
    refined = refine_mesh_terms(original_query, mesh_terms, refinement_type, criteria)
    _echo_result(asyncio.run(_run_search(refined, max_results)), output)


@main.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=3000, show_default=True, type=int)
def serve(host: str, port: int):
    """Run the chat API."""
    import uvicorn

    uvicorn.run(
        "pubmed_assistant.api.main:app",
        host=host,
        port=port,
        log_level=get_settings().log_level.lower(),
    )


if __name__ == "__main__":
    main()
