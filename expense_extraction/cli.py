"""CLI for the ``expense_extraction`` package.

Command handlers (``cmd_extract``, ``cmd_classify``) are plain functions that
return a process exit code; the Typer app below wraps them. Environment
variables (``OPENAI_API_KEY``, ``EXPENSE_EXTRACTION_MODEL``,
``EXPENSE_EXTRACTION_LOG_LEVEL``) are loaded from a local ``.env`` with
``python-dotenv`` before any command runs.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .classifier import KeywordClassifier
from .errors import EmptyInputError, ParseFailure
from .export import summary_to_csv, transactions_to_csv
from .logging_setup import configure_logging
from .models import DEFAULT_CATEGORIES, CategorySet, ExtractionResult
from .pipeline import extract_with_fallback, process

_FORMATS = ("json", "csv", "table")


def _read_text(path: str, label: str) -> str | None:
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: {label} not found: {path}", file=sys.stderr)
    except PermissionError:
        print(f"Error: Permission denied: {path}", file=sys.stderr)
    except UnicodeDecodeError:
        print(f"Error: {label} is not UTF-8 text: {path}", file=sys.stderr)
    return None


def _render_table(result: ExtractionResult, console: Console) -> None:
    table = Table(title="Expenses")
    for col in ("ID", "Date", "Description", "Amount", "Category", "Confidence"):
        table.add_column(col, justify="right" if col in {"Amount", "Confidence"} else "left")
    for t in result.transactions:
        table.add_row(
            t.id,
            t.date,
            t.description,
            f"{t.amount:.2f}",
            t.category,
            f"{t.confidence * 100:.1f}%",
        )
    console.print(table)

    summary = Table(title="Summary")
    summary.add_column("Category")
    summary.add_column("Total", justify="right")
    for category, amount in result.summary.items():
        summary.add_row(category, f"{amount:.2f}")
    summary.add_row("Total", f"{result.total_amount:.2f}", style="bold")
    console.print(summary)


def cmd_extract(
    text_path: str,
    *,
    categories: Sequence[str] | None = None,
    model_response_path: str | None = None,
    use_model: bool = False,
    dedupe: bool = False,
    year: int | None = None,
    output_format: str = "json",
    console: Console | None = None,
) -> int:
    """Extract expenses from a statement text file and print them.

    Sources, in order of precedence:

    - ``model_response_path``: validate a saved model response (no network).
    - ``use_model``: call the OpenAI model, falling back to local parsing when
      it is unavailable or its answer cannot be parsed.
    - otherwise: local line parsing and keyword classification.

    ``output_format`` is ``json`` (full result), ``csv`` (transactions then a
    blank line and the summary), or ``table`` (rich tables).
    """

    if output_format not in _FORMATS:
        print(f"Error: unknown format {output_format!r}; use one of {_FORMATS}", file=sys.stderr)
        return 1

    raw_text = _read_text(text_path, "Statement text file")
    if raw_text is None:
        return 1

    try:
        category_set = CategorySet.of(categories) if categories else DEFAULT_CATEGORIES
    except ValueError as e:
        print(f"Error: invalid categories: {e}", file=sys.stderr)
        return 1

    classifier = KeywordClassifier()
    try:
        if model_response_path is not None:
            response_text = _read_text(model_response_path, "Model response file")
            if response_text is None:
                return 1
            result = process(
                raw_text,
                category_set,
                model_response=response_text,
                deduplicate=dedupe,
            )
        elif use_model:
            from .model_client import request_model_response

            result = extract_with_fallback(
                raw_text,
                category_set,
                request_model=request_model_response,
                classifier=classifier,
                deduplicate=dedupe,
                year=year,
            )
        else:
            result = process(
                raw_text, category_set, classifier=classifier, deduplicate=dedupe, year=year
            )
    except EmptyInputError:
        print("Error: the statement text is empty.", file=sys.stderr)
        return 1
    except ParseFailure as e:
        print(f"Error: could not parse the model response: {e}", file=sys.stderr)
        return 1

    if output_format == "json":
        print(json.dumps(result.to_dict(), indent=2))
    elif output_format == "csv":
        print(transactions_to_csv(result.transactions))
        print(summary_to_csv(result.summary), end="")
    else:
        _render_table(result, console or Console())
    return 0


def cmd_classify(descriptions: Sequence[str]) -> int:
    """Classify each description and print ``<category>\\t<confidence>\\t<reasoning>``."""

    classifier = KeywordClassifier()
    for description in descriptions:
        result = classifier.classify(description)
        print(f"{result.category}\t{result.confidence:.2f}\t{result.reasoning}")
        for hint in classifier.suggestions(description):
            print(f"  hint: {hint}")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Extract and categorize expenses from bank-statement text. "
        "Loads OPENAI_API_KEY from a local .env before running."
    ),
)


@app.command("extract")
def extract_cmd(
    text_path: Annotated[
        Path,
        typer.Option(
            "--text-path",
            help="Path to a UTF-8 file holding statement text.",
            dir_okay=False,
        ),
    ],
    category: Annotated[
        list[str] | None,
        typer.Option(help="Category name (repeatable). Defaults to the built-in set."),
    ] = None,
    model_response_path: Annotated[
        Path | None,
        typer.Option(help="Validate a saved model response instead of parsing locally."),
    ] = None,
    use_model: Annotated[
        bool, typer.Option(help="Ask the OpenAI model first; fall back to local parsing.")
    ] = False,
    dedupe: Annotated[bool, typer.Option(help="Drop repeated transactions.")] = False,
    year: Annotated[
        int | None, typer.Option(help="Year for short dates like '14 Jul'.")
    ] = None,
    output_format: Annotated[
        str, typer.Option("--format", help="Output format: json, csv or table.")
    ] = "json",
) -> None:
    """Extract expenses from statement text."""

    code = cmd_extract(
        str(text_path),
        categories=category,
        model_response_path=str(model_response_path) if model_response_path else None,
        use_model=use_model,
        dedupe=dedupe,
        year=year,
        output_format=output_format,
    )
    raise typer.Exit(code)


@app.command("classify")
def classify_cmd(
    descriptions: Annotated[list[str], typer.Argument(help="Descriptions to classify.")],
) -> None:
    """Classify transaction descriptions with the keyword classifier."""

    raise typer.Exit(cmd_classify(descriptions))


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover - exercised via the console script
    main()
