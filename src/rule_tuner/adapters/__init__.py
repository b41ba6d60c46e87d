"""Oracle adapters."""

from __future__ import annotations

from .base import Oracle

__all__ = ["Oracle"]
