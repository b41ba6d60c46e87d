"""Conversation and rule document input/output."""

from __future__ import annotations

from .loaders import load_conversations, load_rules, sample_conversations, write_rules

__all__ = ["load_conversations", "load_rules", "write_rules", "sample_conversations"]
