"""
Pytest configuration and fixtures for callbook tests.

This module provides shared fixtures used across unit and integration
tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from callbook.registry import ObjectRegistry
from callbook.schema import DEFAULT_CONFIG, FormatConfig


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def registry() -> Generator[ObjectRegistry, None, None]:
    """A fresh registry per test, cleared at the test boundary even on failure."""
    reg = ObjectRegistry()
    yield reg
    reg.clear()


@pytest.fixture
def config() -> FormatConfig:
    """The default format configuration."""
    return DEFAULT_CONFIG


@pytest.fixture
def checkout_text() -> str:
    """A verified text with a preamble, values, a void call and a throw."""
    return (
        "📋 <Test Inputs>\n"
        "  🔸 orderId: 42\n"
        "\n"
        "🦜 GetTotal:\n"
        "  🔸 orderId: 42\n"
        "  🔹 Returns: 19.99\n"
        "\n"
        "🦜 Charge:\n"
        "  🔸 amount: 19.99\n"
        '  🔸 currency: "EUR"\n'
        "  🔹 Returns: True\n"
        "\n"
        "🦜 SendReceipt:\n"
        '  🔸 email: "a@example.com"\n'
        "\n"
        "🦜 Archive:\n"
        '  🔻 Throws: ValueError("archive offline")\n'
    )


@pytest.fixture
def checkout_file(temp_dir: Path, checkout_text: str) -> Path:
    """The checkout text written to a verified file."""
    path = temp_dir / "OrderService.Checkout.paid.verified.txt"
    path.write_text(checkout_text, encoding="utf-8")
    return path
