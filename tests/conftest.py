from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.content_tree import ContentTree


@pytest.fixture
def content_tree(tmp_path: Path) -> ContentTree:
    """Provide a reusable content root rooted at the pytest tmp_path."""
    return ContentTree(tmp_path)
