import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

import click

from . import __version__
from .runtime import (
    reset_full_rebuild,
    reset_verbose_logging,
    set_full_rebuild,
    set_verbose_logging,
)

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


class OrderedGroup(click.Group):
    def __init__(
        self, *args, commands_order: Sequence[str] | None = None, **kwargs
    ) -> None:
        super().__init__(*args, **kwargs)
        self._commands_order = list(commands_order or [])

    def list_commands(self, ctx: click.Context) -> list[str]:
        if not self._commands_order:
            return super().list_commands(ctx)
        ordered = [name for name in self._commands_order if name in self.commands]
        remaining = [
            name
            for name in super().list_commands(ctx)
            if name not in self._commands_order
        ]
        return ordered + remaining


def configure_logging(verbose: bool) -> None:
    root = logging.getLogger("marketbundle")
    if not any(getattr(h, "_marketbundle", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._marketbundle = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def _load_settings(ctx: click.Context, **overrides):
    from .config import load_settings

    try:
        return load_settings(ctx.obj.get("config"), **overrides)
    except (OSError, ValueError) as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc


@click.group(
    cls=OrderedGroup,
    commands_order=["build", "cache"],
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option(
    "--config",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML settings file (default: ./marketbundle.yaml if present).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug details.")
@click.version_option(__version__, prog_name="marketbundle")
@click.pass_context
def cli(ctx, config, verbose):
    """Build the marketplace catalog manifests from item JSON files."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose
    configure_logging(verbose)
    token = set_verbose_logging(verbose)
    ctx.call_on_close(lambda: reset_verbose_logging(token))


@cli.command("build")
@click.option("--data-dir", type=click.Path(file_okay=False), default=None)
@click.option("--output-dir", type=click.Path(file_okay=False), default=None)
@click.option("--cache-dir", type=click.Path(file_okay=False), default=None)
@click.option(
    "--repo-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Git work tree queried for item history.",
)
@click.option("-j", "--jobs", type=click.IntRange(min=1), default=None)
@click.option("--full", "full_rebuild", is_flag=True, help="Ignore the build cache.")
@click.option(
    "--derive-tags",
    is_flag=True,
    help="Derive keywords from name and description when none are curated.",
)
@click.option(
    "--photo-blurhashes",
    is_flag=True,
    help="Also compute a blurhash for every photo of a photo pack.",
)
@click.pass_context
def build_cmd(
    ctx,
    data_dir,
    output_dir,
    cache_dir,
    repo_dir,
    jobs,
    full_rebuild,
    derive_tags,
    photo_blurhashes,
):
    """
    Validate, enrich and bundle every item into the output directory.
    Any integrity error aborts the build and leaves the previous output intact.
    """
    from . import run_build
    from .errors import BuildError

    settings = _load_settings(
        ctx,
        data_dir=data_dir,
        output_dir=output_dir,
        cache_dir=cache_dir,
        repo_dir=repo_dir,
        jobs=jobs,
        derive_tags=derive_tags or None,
        photo_blurhashes=photo_blurhashes or None,
    )

    token = set_full_rebuild(full_rebuild)
    try:
        result = run_build(settings)
    except BuildError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        reset_full_rebuild(token)

    click.echo(
        f"Bundled {result.total_items} items, "
        f"{len(result.catalog.collections)} collections and "
        f"{len(result.catalog.curators)} curators into {result.output_dir} "
        f"in {result.duration:.2f}s"
    )
    click.echo(
        f"  history: {result.history_cache_hits} cached, "
        f"{result.history_fetched} fetched; "
        f"media: {result.media_cache_hits} cached, {result.media_fetched} fetched"
    )


@cli.group("cache")
def cache_group():
    """Inspect or reset the build cache."""


@cache_group.command("stats")
@click.option("--cache-dir", type=click.Path(file_okay=False), default=None)
@click.pass_context
def cache_stats_cmd(ctx, cache_dir):
    """Print entry counts and ages for each cache namespace."""
    from .cache import CacheSet

    settings = _load_settings(ctx, cache_dir=cache_dir)
    caches = CacheSet(settings.cache_dir, max_age=settings.cache_max_age)
    caches.load()
    for cache in caches:
        stats = cache.stats()
        click.echo(
            f"{cache.name}: {stats['total_entries']} entries "
            f"(oldest: {stats['oldest_entry'] or '-'}, "
            f"newest: {stats['newest_entry'] or '-'})"
        )


@cache_group.command("clear")
@click.option("--cache-dir", type=click.Path(file_okay=False), default=None)
@click.pass_context
def cache_clear_cmd(ctx, cache_dir):
    """Delete the cache directory."""
    settings = _load_settings(ctx, cache_dir=cache_dir)
    root = Path(settings.cache_dir)
    if not root.exists():
        click.echo(f"No cache at {root}")
        return
    shutil.rmtree(root)
    click.echo(f"Removed {root}")


def main():
    cli()


if __name__ == "__main__":
    main()
