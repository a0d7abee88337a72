"""Shared test fixtures and configuration."""

import os
from pathlib import Path

import pytest

from booksearch.search.serialization import load_index


FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"
SAMPLE_INDEX_PATH = FIXTURES_DIR / "searchindex.js"


@pytest.fixture(autouse=True)
def isolated_settings_env(monkeypatch, tmp_path):
    """Keep BOOKSEARCH_* variables and any local .env file out of every test."""

    for key in list(os.environ):
        if key.upper().startswith("BOOKSEARCH_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def sample_index_path() -> Path:
    """A seven-section searchindex.js produced by a real book build."""

    return SAMPLE_INDEX_PATH


@pytest.fixture
def sample_index(sample_index_path):
    return load_index(sample_index_path)


def _write_book(root: Path, files: dict[str, str]) -> Path:
    for relative, text in files.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    return root


@pytest.fixture
def write_book():
    """Write a mapping of relative path -> text under a root directory."""

    return _write_book


SAMPLE_SUMMARY = """# Summary

[Introduction](introduction.md)

- [Chapter 1](chapter_1.md)
    - [Setup](chapter_1/setup.md)

---

[Contributions](contribution.md)
"""

SAMPLE_CHAPTERS = {
    "introduction.md": """# Introduction

Leverage predefined templates to build on Starknet faster.

## Why Templates?

- **Rapid Prototyping**: Skip the initial setup and dive straight into building your application.
- **Consistency**: Maintain code quality across your projects.
""",
    "chapter_1.md": "# Chapter 1\n",
    "chapter_1/setup.md": """# Setup

Install the toolchain with `scarb` and run the [quick start](https://example.com).

```sh
scarb build
```
""",
    "contribution.md": """# Contributions

## Contributing Templates

We encourage the community to contribute new templates.
""",
}


@pytest.fixture
def sample_book(tmp_path) -> Path:
    """A small on-disk book with nested chapters and a suffix chapter."""

    files = {"book.toml": '[book]\ntitle = "Sample"\n', "src/SUMMARY.md": SAMPLE_SUMMARY}
    files.update({f"src/{name}": text for name, text in SAMPLE_CHAPTERS.items()})
    return _write_book(tmp_path / "sample-book", files)
