"""Shared fixtures for couchassembler tests."""

import tempfile
from pathlib import Path
from typing import Union

import pytest

from couchassembler.assembler.context import BuildContext


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def context(temp_dir):
    """Create a build context rooted at the temporary directory."""
    return BuildContext(temp_dir)


@pytest.fixture
def make_tree(temp_dir):
    """Return a function creating files from a {relative path: content} mapping."""

    def make(files: dict[str, Union[str, bytes]]) -> Path:
        for relative, content in files.items():
            path = temp_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_bytes(content.encode("utf-8"))
        return temp_dir

    return make
