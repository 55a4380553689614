"""Source dependency retrieval."""

from __future__ import annotations

from .git import checkout_tag

__all__ = ["checkout_tag"]
