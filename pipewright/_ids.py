"""Run identifiers. Only runs get ids; definitions never carry them."""

from __future__ import annotations

import uuid


def generate_run_id(pipeline: str, length: int = 12) -> str:
    """Return ``<pipeline>-<hex>`` so run ids sort and grep by pipeline."""
    return f"{pipeline}-{uuid.uuid4().hex[:length]}"
