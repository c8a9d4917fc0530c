#!/usr/bin/env python
"""CLI entry point for the Category Service."""

import asyncio
import json
from typing import Optional, Tuple

import click
from dotenv import load_dotenv

load_dotenv()

from category_service.config import APP_NAME, APP_VERSION, CACHE_BACKEND, PORT, configure_logging  # noqa: E402
from category_service.utils.slug import (  # noqa: E402
    generate_unique_slug,
    is_valid_slug,
    slugify,
)


@click.group()
def cli():
    """Category Service - taxonomy API with a read-through cache."""
    pass


@cli.command()
@click.option("--host", type=str, default="0.0.0.0", help="Bind address")
@click.option("--port", type=int, default=PORT, help="Port (default: PORT or 5000)")
@click.option("--reload", is_flag=True, default=False, help="Reload on code changes")
def serve(host: str, port: int, reload: bool):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    configure_logging()
    click.echo(f"Starting {APP_NAME} {APP_VERSION} on {host}:{port} (cache: {CACHE_BACKEND})")
    uvicorn.run("category_service.main:app", host=host, port=port, reload=reload)


@cli.command("init-db")
@click.option("--database-url", type=str, default=None, help="Override DATABASE_URL")
def init_db(database_url: Optional[str]):
    """Create the taxonomy tables and indexes."""
    from storage.schema import create_engine_with_url, create_tables, metadata

    engine = create_engine_with_url(database_url)
    try:
        create_tables(engine)
    finally:
        engine.dispose()

    click.echo("Created tables:")
    for table_name in metadata.tables.keys():
        click.echo(f"  - {table_name}")


@cli.command()
def health():
    """Check database and Redis connectivity."""
    from category_service.db.pool import check_pool_health, close_pool, init_pool
    from category_service.redis_client import check_redis_health, close_redis_pool, init_redis_pool

    async def run():
        report = {}
        try:
            await init_pool()
            report["database"] = await check_pool_health()
        except Exception as e:
            report["database"] = {"status": "unavailable", "error": str(e)}
        finally:
            await close_pool()

        if CACHE_BACKEND == "redis":
            try:
                await init_redis_pool()
                report["redis"] = await check_redis_health()
            except Exception as e:
                report["redis"] = {"status": "unavailable", "error": str(e)}
            finally:
                await close_redis_pool()
        else:
            report["cache"] = {"status": "healthy", "backend": "memory"}
        return report

    report = asyncio.run(run())
    click.echo(json.dumps(report, indent=2))
    if any(component["status"] != "healthy" for component in report.values()):
        raise SystemExit(1)


@cli.command("validate-slug")
@click.argument("text")
@click.option("--taken", multiple=True, help="Slug already in use (repeatable)")
def validate_slug(text: str, taken: Tuple[str, ...]):
    """Show the slug generated for TEXT and a free variant given --taken slugs."""
    slug = slugify(text)
    click.echo(f"Slug:  {slug or '(empty)'}")
    click.echo(f"Valid: {'yes' if is_valid_slug(slug) else 'no'}")

    if slug and taken:
        used = set(taken)

        async def exists(candidate: str) -> bool:
            return candidate in used

        unique = slug
        if slug in used:
            unique = asyncio.run(generate_unique_slug(slug, exists, base_taken=True))
        click.echo(f"Free:  {unique}")


if __name__ == "__main__":
    cli()
