"""Pytest configuration and shared fixtures."""

import pytest
from pathlib import Path

from systems import Model, parse

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def examples_dir() -> Path:
    """Return the path to the example specs."""
    return EXAMPLES_DIR


@pytest.fixture
def hiring_spec(examples_dir: Path) -> str:
    """Load the hiring funnel spec."""
    return (examples_dir / "hiring.txt").read_text()


@pytest.fixture
def hiring_model(hiring_spec: str) -> Model:
    """Parse the hiring funnel spec."""
    return parse(hiring_spec)


@pytest.fixture
def chain_model(fixtures_dir: Path) -> Model:
    """Parse a two step chain: a(20) > b @ 5, b > c @ 3."""
    return parse((fixtures_dir / "chain.txt").read_text())
