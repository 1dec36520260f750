"""Shared helpers for the built-in skills."""

import json
from collections.abc import Mapping
from typing import Any

from loguru import logger

from veritas.errors import CompletionError

STATEMENT_STRATEGIES = ("default", "simple-llm")


def citation_payload(citations: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Citation fields worth showing to a report writer."""
    return [
        {
            "id": item.get("fact_id"),
            "type": item.get("type"),
            "source": item.get("source"),
            "explanation": item.get("explanation"),
            "content": item.get("content"),
        }
        for item in citations
    ]


def citation_line(item: Mapping[str, Any], label: str = "") -> str:
    """One markdown bullet for a citation."""
    prefix = f"{label} " if label else ""
    line = f"- **{prefix}{item.get('fact_id')}**: {item.get('content')}"
    if item.get("source"):
        line += f" _(source: {item['source']})_"
    if item.get("explanation"):
        line += f"\n  - Rationale: {item['explanation']}"
    return line


def statement_verdict(supporting: list[Any], challenging: list[Any]) -> str:
    if supporting and not challenging:
        return "supported"
    if challenging and not supporting:
        return "contradicted"
    if supporting or challenging:
        return "mixed"
    return "insufficient data"


async def write_report(
    ctx: Any,
    task: Mapping[str, Any],
    description: str,
    payload: Any,
    fallback: str,
    intro: str = "Evaluate the following data:",
) -> str:
    """
    Ask the completion provider for a markdown report.

    Returns `fallback` when no provider is configured or the call fails.
    """
    completion = getattr(ctx, "completion", None)
    if completion is None:
        return fallback
    history = [{
        "role": "user",
        "content": f"{intro}\n```json\n{json.dumps(payload, indent=2, ensure_ascii=False, default=str)}\n```",
    }]
    try:
        report = await completion.complete(task, description, history=history, mode="precision")
    except CompletionError as e:
        logger.warning(f"Falling back to static {task.get('skill', 'skill')} report: {e}")
        return fallback
    return report.strip() if isinstance(report, str) and report.strip() else fallback
