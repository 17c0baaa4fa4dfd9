"""Conversion between Atlassian Document Format and plain text.

Descriptions are flattened on read and wrapped on write. The conversion is
lossy: formatting, mentions and media are dropped, so text read back after an
edit is not guaranteed to match what Jira renders.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional


def adf_to_text(document: Any) -> Optional[str]:
    """Concatenate every leaf ``text`` node of an ADF document in order."""
    if document is None:
        return None
    if isinstance(document, str):
        return document

    parts: List[str] = []
    _collect_text(document, parts)
    return "".join(parts)


def _collect_text(node: Any, parts: List[str]) -> None:
    if isinstance(node, list):
        for child in node:
            _collect_text(child, parts)
        return
    if not isinstance(node, dict):
        return
    text = node.get("text")
    if isinstance(text, str):
        parts.append(text)
    _collect_text(node.get("content") or [], parts)


def text_to_adf(text: Optional[str]) -> Dict[str, Any]:
    """Wrap plain text into a single-paragraph ADF document."""
    # Jira rejects text nodes with an empty string.
    inline = [{"type": "text", "text": text}] if text else []
    return {
        "type": "doc",
        "version": 1,
        "content": [{"type": "paragraph", "content": inline}],
    }
