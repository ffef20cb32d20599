"""CLI for the radial mind map (grow and explore idea trees)."""

import asyncio
import json
from typing import Annotated

import typer
from loguru import logger

from radial_mindmap.config import DEFAULT_MODEL
from radial_mindmap.core.expansion.controller import (
    ExpansionController,
    ExpansionResult,
    ExpansionStatus,
)
from radial_mindmap.core.tree.markdown import render_tree_as_markdown
from radial_mindmap.core.tree.store import TreeStore
from radial_mindmap.logging_config import configure_logging
from radial_mindmap.protocols import IdeaGeneratorProtocol
from radial_mindmap.services.gemini import GeminiIdeaGenerator

app = typer.Typer(help="Radial mind map: brainstorm a topic into an expanding idea tree.")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


def _make_generator(model: str, cache: bool) -> IdeaGeneratorProtocol:
    try:
        return GeminiIdeaGenerator(model=model, from_cache=cache)
    except RuntimeError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e


async def grow_map(controller: ExpansionController, topic: str, depth: int) -> ExpansionResult:
    """Seed the map and expand every new idea, level by level, ``depth`` levels deep."""
    result = await controller.start(topic)
    frontier = list(result.child_ids)
    for _ in range(depth - 1):
        if not frontier:
            break
        level = await asyncio.gather(*(controller.expand(node_id) for node_id in frontier))
        for r in level:
            if r.status is ExpansionStatus.FAILED and r.error is not None:
                typer.echo(f"warning: {r.error}", err=True)
        frontier = [child_id for r in level for child_id in r.child_ids]
    return result


@app.command()
def grow(
    topic: str = typer.Argument(..., help="Seed topic"),
    depth: int = typer.Option(1, "--depth", "-n", min=1, help="Levels of ideas to generate"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output the layout as JSON"),
    cache: bool = typer.Option(
        False, "--cache", "-C", help="Cache responses and use cache while developing"
    ),
    model: Annotated[str, typer.Option("--model", "-m", help="Gemini model name")] = DEFAULT_MODEL,
) -> None:
    """Brainstorm TOPIC and print the resulting tree."""
    controller = ExpansionController(TreeStore(), _make_generator(model, cache))
    result = asyncio.run(grow_map(controller, topic, depth))

    if result.status is ExpansionStatus.SKIPPED:
        logger.error("Nothing to brainstorm: the topic is empty.")
        raise typer.Exit(1)
    if result.status is ExpansionStatus.FAILED:
        logger.error("{}", result.error)
        raise typer.Exit(1)

    if output_json:
        typer.echo(json.dumps(controller.layout().to_dict(), indent=2))
    else:
        typer.echo(render_tree_as_markdown(controller.store), nl=False)


@app.command()
def explore(
    cache: bool = typer.Option(
        False, "--cache", "-C", help="Cache responses and use cache while developing"
    ),
    model: Annotated[str, typer.Option("--model", "-m", help="Gemini model name")] = DEFAULT_MODEL,
) -> None:
    """Interactively grow a map: enter a topic, then node numbers to expand."""
    controller = ExpansionController(TreeStore(), _make_generator(model, cache))
    typer.echo("Enter a topic to start, a node number to expand it, 'reset' or 'quit'.")

    numbered: dict[int, str] = {}
    while True:
        try:
            line = typer.prompt(">", prompt_suffix=" ").strip()
        except typer.Abort:
            break
        if not line:
            continue
        if line in {"quit", "exit", "q"}:
            break
        if line == "reset":
            controller.reset()
            numbered = {}
            typer.echo("Map cleared.")
            continue

        if line.isdigit() and controller.store.root_id is not None:
            node_id = numbered.get(int(line))
            if node_id is None:
                typer.echo(f"No node numbered {line}.")
                continue
            result = asyncio.run(controller.expand(node_id))
        else:
            result = asyncio.run(controller.start(line))

        if result.status is ExpansionStatus.FAILED:
            typer.echo(f"Error: {result.error} (try again)")
        elif result.status is ExpansionStatus.SKIPPED:
            typer.echo("That node cannot be expanded.")

        numbered = {i: n.id for i, n in enumerate(controller.layout().nodes, start=1)}
        labels = {node_id: i for i, node_id in numbered.items()}
        typer.echo(render_tree_as_markdown(controller.store, numbered=labels), nl=False)
