"""Application bootstrap wiring settings, the flat index, and its adapter."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from flatvec.app.adapters import FlatIndexAdapter
from flatvec.app.ports import VectorStorePort
from flatvec.config import Settings, get_settings
from flatvec.index.flat_index import FlatIndex

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApplicationContainer:
    """Aggregates the opened store and its port for callers such as the CLI."""

    settings: Settings
    store: FlatIndex
    vector_store: VectorStorePort


def bootstrap_application(
    settings: Settings | None = None,
    *,
    index_path: Path | None = None,
    dim: int | None = None,
    create: bool = True,
) -> ApplicationContainer:
    """Open (or create) the configured index and wire the application container.

    ``index_path`` and ``dim`` override the values from ``settings``. Without
    an explicit ``dim`` an existing index is opened at the dimension stored in
    its header; a new one is created at ``settings.dim``.

    Raises:
        FileNotFoundError: If ``create`` is False and no index exists.
    """
    active_settings = settings or get_settings()
    path = Path(index_path) if index_path is not None else active_settings.get_index_path()
    if not create and not path.exists():
        raise FileNotFoundError(f"Index not found: {path}")

    if dim is None and path.exists():
        store = FlatIndex.open(
            path,
            fsync=active_settings.fsync,
            batch_records=active_settings.search_batch_records,
        )
    else:
        store = FlatIndex.open_or_create(
            path,
            dim if dim is not None else active_settings.dim,
            fsync=active_settings.fsync,
            batch_records=active_settings.search_batch_records,
        )
    logger.debug("Bootstrapped %r", store)

    return ApplicationContainer(
        settings=active_settings,
        store=store,
        vector_store=FlatIndexAdapter(store),
    )
