from pathlib import Path

__version__ = "0.1.0"


def run_build(settings):
    """Run one build with ``settings``, persisting the cache on success.

    Raises :class:`marketbundle.errors.BuildError` on any integrity violation;
    the output directory and the cache are then left as they were.
    """
    from .cache import CacheSet
    from .manifest import CatalogBuilder

    caches = CacheSet(settings.cache_dir, max_age=settings.cache_max_age)
    caches.load()
    result = CatalogBuilder(settings, version=__version__, caches=caches).run()
    caches.save()
    return result


def build(config: str | Path | None = None, **overrides):
    """Build the catalog; ``overrides`` take precedence over config and env."""
    from .config import load_settings

    return run_build(load_settings(config, **overrides))
