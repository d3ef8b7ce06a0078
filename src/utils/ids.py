"""Identifier generation."""

from __future__ import annotations

import uuid


def new_id(prefix: str | None = None) -> str:
    """Return a short random identifier, optionally prefixed (``chg_3f9a...``)."""
    token = uuid.uuid4().hex[:12]
    return f"{prefix}_{token}" if prefix else token
