"""Tests for the source writer helpers."""

from __future__ import annotations

from servicegen.generators.writer import SourceWriter, import_lines, snake_case


def test_writer_tracks_indentation() -> None:
    writer = SourceWriter()
    writer.line("def f():")
    with writer.indented():
        writer.line("return 1")
    writer.line()
    writer.line()

    assert writer.getvalue() == "def f():\n    return 1\n"


def test_import_lines_are_sorted_and_deduplicated() -> None:
    assert import_lines(["pydantic", "app.models", "", "pydantic"]) == [
        "import app.models",
        "import pydantic",
    ]


def test_snake_case() -> None:
    assert snake_case("HelloService") == "hello_service"
    assert snake_case("OrderAPIGateway") == "order_api_gateway"
    assert snake_case("orders") == "orders"
