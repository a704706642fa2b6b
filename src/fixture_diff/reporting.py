"""Report rendering for comparison results."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from jinja2 import Environment, FileSystemLoader, select_autoescape

if TYPE_CHECKING:
    from jinja2.environment import TemplateStream

    from fixture_diff.result import ComparisonResult

TEMPLATE_DIR = Path(__file__).parent / "templates"

_JINJA_ENV = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(),
    trim_blocks=True,
    lstrip_blocks=True,
)


def result_to_yaml(result: ComparisonResult) -> str:
    """Convert a comparison result to a YAML document.

    Keys keep the report order (summary first, then tables in the order
    their first difference was recorded).
    """
    return yaml.safe_dump(
        result.to_dict(),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


def result_to_json(result: ComparisonResult) -> str:
    """Convert a comparison result to a JSON string."""
    return json.dumps(result.to_dict(), ensure_ascii=False)


def result_to_html(result: ComparisonResult) -> TemplateStream:
    """Generate an HTML report from a comparison result."""
    template = _JINJA_ENV.get_template("report.html")
    return template.stream(
        summary=result.summary(),
        report=result.to_dict(),
    )


def result_to_summary(result: ComparisonResult) -> list[dict[str, Any]]:
    """Convert a result to per-table difference counts.

    Each dictionary contains:
        - name: table name, or ``(dataset)`` for table-set level differences
        - differences: total number of differences
        - cells: number of cell value differences
        - structure: number of table or row count differences
    """
    return [
        {
            "name": table,
            "differences": len(differences),
            "cells": sum(1 for d in differences if d.path.row is not None),
            "structure": sum(1 for d in differences if d.path.row is None),
        }
        for table, differences in result.by_table().items()
    ]
