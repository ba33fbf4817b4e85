"""OntoGraph command-line interface."""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable

import click

from ontograph.domain.errors import OntologyError


def _facade(ctx: click.Context):
    from ontograph.config import build_facade

    if "facade" not in ctx.obj:
        ctx.obj["facade"] = build_facade(ctx.obj["config"])
    return ctx.obj["facade"]


def reports_errors(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Render domain errors as ``error [Code]: message`` and exit non-zero."""

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except OntologyError as exc:
            click.echo(f"error [{exc.code.value}]: {exc.message}", err=True)
            raise SystemExit(1) from exc
        except ValueError as exc:
            raise click.BadParameter(str(exc)) from exc

    return wrapper


@click.group()
@click.option("--config", "-c", default=None, help="Path to config YAML.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """OntoGraph: ontology-constrained relations and graph analytics."""
    from ontograph.config import default_config_path

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = config or default_config_path()


@main.command()
@click.pass_context
@reports_errors
def types(ctx: click.Context) -> None:
    """List the relation types declared by the ontology."""
    for d in _facade(ctx).relation_types():
        click.echo(
            f"{d.name:<16} {', '.join(sorted(d.source_types))} → "
            f"{', '.join(sorted(d.target_types))}  {d.cardinality}"
        )
        if d.description:
            click.echo(f"    {d.description}")


@main.command()
@click.argument("source_id")
@click.argument("target_id")
@click.argument("rel_type")
@click.pass_context
@reports_errors
def validate(ctx: click.Context, source_id: str, target_id: str, rel_type: str) -> None:
    """Check whether SOURCE_ID -[REL_TYPE]-> TARGET_ID could be created."""
    result = _facade(ctx).validate_relation(source_id, target_id, rel_type)
    if result["ok"]:
        click.echo("ok")
    else:
        click.echo(f"invalid [{result['reason']}]: {result['detail']}")
        raise SystemExit(1)


@main.command()
@click.argument("source_id")
@click.argument("target_id")
@click.argument("rel_type")
@click.pass_context
@reports_errors
def link(ctx: click.Context, source_id: str, target_id: str, rel_type: str) -> None:
    """Create the relation SOURCE_ID -[REL_TYPE]-> TARGET_ID."""
    rel = _facade(ctx).create_relation(source_id, target_id, rel_type)
    click.echo(f"Created {rel}")


@main.command()
@click.argument("source_id")
@click.argument("target_id")
@click.argument("rel_type")
@click.pass_context
@reports_errors
def unlink(ctx: click.Context, source_id: str, target_id: str, rel_type: str) -> None:
    """Delete the relation SOURCE_ID -[REL_TYPE]-> TARGET_ID."""
    _facade(ctx).delete_relation(source_id, target_id, rel_type)
    click.echo(f"Deleted ({source_id})-[{rel_type}]->({target_id})")


@main.command()
@click.argument("entity_id")
@click.option("--type", "-t", "rel_type", default=None, help="Only this relation type.")
@click.option("--direction", "-d", default="both",
              type=click.Choice(["outgoing", "incoming", "both"]))
@click.pass_context
@reports_errors
def relations(ctx: click.Context, entity_id: str, rel_type: str | None, direction: str) -> None:
    """List the relations of ENTITY_ID."""
    rels = _facade(ctx).relations_of(entity_id, rel_type, direction)
    if not rels:
        click.echo(f"No relations for {entity_id}.")
        return
    for r in rels:
        click.echo(f"  {r}")


@main.command("list")
@click.option("--limit", "-n", default=50, show_default=True)
@click.option("--skip", default=0, show_default=True)
@click.pass_context
@reports_errors
def list_relations(ctx: click.Context, limit: int, skip: int) -> None:
    """Page through every stored relation."""
    for r in _facade(ctx).all_relations(limit, skip):
        click.echo(f"  {r}")


@main.command()
@click.argument("source_id")
@click.argument("target_id")
@click.option("--max-depth", default=3, show_default=True)
@click.option("--timeout", default=None, type=float, help="Seconds before giving up.")
@click.pass_context
@reports_errors
def paths(
    ctx: click.Context, source_id: str, target_id: str, max_depth: int, timeout: float | None
) -> None:
    """Show the shortest paths between SOURCE_ID and TARGET_ID."""
    found = _facade(ctx).find_paths(source_id, target_id, max_depth, timeout=timeout)
    if not found:
        click.echo(f"No path within {max_depth} hops.")
        return
    for i, p in enumerate(found, 1):
        hops = [p.start]
        for step in p.steps:
            arrow = f"-[{step.relation.rel_type}]->" if step.forward else f"<-[{step.relation.rel_type}]-"
            hops.append(f"{arrow} {step.entity_id}")
        click.echo(f"  {i}. ({p.length}) " + " ".join(hops))


@main.command()
@click.option("--limit", "-n", default=20, show_default=True)
@click.option("--type", "-t", "entity_types", multiple=True, help="Restrict to entity types.")
@click.option("--timeout", default=None, type=float)
@click.pass_context
@reports_errors
def centrality(
    ctx: click.Context, limit: int, entity_types: tuple[str, ...], timeout: float | None
) -> None:
    """Rank entities by number of relations."""
    for r in _facade(ctx).centrality(limit, entity_types=entity_types or None, timeout=timeout):
        click.echo(f"  {r.score:>6g}  {r.entity_id} [{r.entity_type or '?'}]")


@main.command()
@click.argument("entity_id")
@click.option("--limit", "-n", default=10, show_default=True)
@click.option("--type", "-t", "entity_types", multiple=True, help="Restrict to entity types.")
@click.option("--timeout", default=None, type=float)
@click.pass_context
@reports_errors
def similar(
    ctx: click.Context,
    entity_id: str,
    limit: int,
    entity_types: tuple[str, ...],
    timeout: float | None,
) -> None:
    """Recommend entities sharing neighbours with ENTITY_ID."""
    found = _facade(ctx).similar_to(
        entity_id, limit, entity_types=entity_types or None, timeout=timeout
    )
    if not found:
        click.echo(f"No entity shares a neighbour with {entity_id}.")
        return
    for r in found:
        click.echo(f"  {r.score:.3f}  {r.entity_id} [{r.entity_type or '?'}] shared={r.shared}")


@main.command()
@click.pass_context
@reports_errors
def stats(ctx: click.Context) -> None:
    """Show relation counts per type."""
    st = _facade(ctx).statistics()
    click.echo("=== Relation Stats ===")
    click.echo(f"  Total: {st.total}")
    for rel_type, count in st.by_type:
        click.echo(f"  {rel_type:<16} {count}")
    click.echo(f"  Available types: {', '.join(st.available_types)}")


if __name__ == "__main__":
    main()
