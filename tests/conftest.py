from __future__ import annotations

from pathlib import Path

import pytest

from projconf.catalog import Catalog, load_catalog
from tests._fixtures.project_builder import ProjectBuilder, build_global_root


@pytest.fixture
def project(tmp_path: Path) -> ProjectBuilder:
    """Provide a project builder rooted at the pytest tmp_path."""
    return ProjectBuilder(tmp_path)


@pytest.fixture
def catalog() -> Catalog:
    return load_catalog()


@pytest.fixture
def global_root(tmp_path: Path) -> Path:
    return build_global_root(tmp_path)
