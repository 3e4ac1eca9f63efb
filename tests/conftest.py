"""Pytest configuration and fixtures."""

import gc
import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from flatvec.config import Settings
from flatvec.index.flat_index import FlatIndex


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    try:
        yield Path(tmpdir)
    finally:
        # Force garbage collection to release any file handles
        gc.collect()
        shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def index_path(temp_dir: Path) -> Path:
    """Location for a fresh index file inside a nested directory."""
    return temp_dir / "data" / "vectors.index"


@pytest.fixture
def store_2d(index_path: Path) -> FlatIndex:
    """Two-dimensional store holding [1,0], [0,1], [1,1] as IDs 1..3."""
    store = FlatIndex.open_or_create(index_path, 2, fsync=False)
    for vector in ([1.0, 0.0], [0.0, 1.0], [1.0, 1.0]):
        store.append(vector)
    return store


@pytest.fixture
def override_settings(temp_dir: Path) -> Generator[Settings, None, None]:
    """Provide isolated flatvec settings scoped to tests."""

    import flatvec.config as config_module

    original_settings = getattr(config_module, "_settings", None)

    data_dir = temp_dir / "appdata"
    data_dir.mkdir(parents=True, exist_ok=True)

    settings = config_module.Settings(
        data_dir=data_dir,
        dim=4,
        fsync=False,
    )

    config_module._settings = settings

    try:
        yield settings
    finally:
        config_module._settings = original_settings
