from .build import BuildResult, CatalogBuilder
from .outputs import (
    MANIFEST_FILE,
    MANIFEST_LITE_FILE,
    SEARCH_INDEX_FILE,
    STATS_FILE,
    Catalog,
)
from .staging import StagedOutput

__all__ = [
    "BuildResult",
    "Catalog",
    "CatalogBuilder",
    "MANIFEST_FILE",
    "MANIFEST_LITE_FILE",
    "SEARCH_INDEX_FILE",
    "STATS_FILE",
    "StagedOutput",
]
