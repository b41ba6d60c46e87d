"""Conversation and rule document loading, rule document writing.

Conversations come from CSV exports (``conversation_id,messages`` with the
messages column holding a JSON array), JSON arrays or JSON lines. Rule
documents come from YAML/JSON store exports or plain text files.

Public API:
    load_conversations(path) -> list[Conversation]
    load_rules(path) -> str
    write_rules(path, text) -> Path
    sample_conversations(conversations, n, rng) -> list[Conversation]
"""

from __future__ import annotations

import csv
import json
import logging
import random
from pathlib import Path
from typing import Any

import yaml

from ..core.transcript import Conversation
from ..errors import DataFormatError

logger = logging.getLogger(__name__)

RULE_SEPARATOR = "\n\n"


def _load_csv(path: Path) -> list[Conversation]:
    conversations: list[Conversation] = []
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        header = next(reader, None)
        if header is None:
            return []
        for line_no, row in enumerate(reader, start=2):
            if not row or not any(cell.strip() for cell in row):
                continue
            if len(row) < 2:
                logger.warning("Line %d: expected id and messages columns, skipping", line_no)
                continue
            conv_id = row[0].strip()
            # Unquoted exports split the JSON array on its commas.
            raw_messages = ",".join(row[1:]).strip()
            try:
                messages = json.loads(raw_messages)
                conversations.append(
                    Conversation.from_dict({"conversation_id": conv_id, "messages": messages})
                )
            except (json.JSONDecodeError, DataFormatError) as e:
                logger.warning(
                    "Line %d: cannot parse messages (%s): %s", line_no, e, raw_messages[:100]
                )
    return conversations


def _load_json(path: Path) -> list[Conversation]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("conversations", [])
    if not isinstance(data, list):
        raise DataFormatError(f"{path}: expected a list of conversations")
    return [Conversation.from_dict(item) for item in data]


def _load_jsonl(path: Path) -> list[Conversation]:
    conversations: list[Conversation] = []
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                conversations.append(Conversation.from_dict(json.loads(line)))
            except (json.JSONDecodeError, DataFormatError) as e:
                logger.warning("Line %d: skipping unparseable conversation: %s", line_no, e)
    return conversations


def load_conversations(path: str | Path) -> list[Conversation]:
    """Load conversations from a .csv, .json or .jsonl file.

    Raises:
        DataFormatError: Unsupported extension or malformed JSON document
        FileNotFoundError: If the file does not exist
    """
    conv_path = Path(path)
    suffix = conv_path.suffix.lower()
    if suffix == ".csv":
        conversations = _load_csv(conv_path)
    elif suffix == ".json":
        try:
            conversations = _load_json(conv_path)
        except json.JSONDecodeError as e:
            raise DataFormatError(f"{conv_path}: invalid JSON: {e}") from e
    elif suffix == ".jsonl":
        conversations = _load_jsonl(conv_path)
    else:
        raise DataFormatError(f"Unsupported conversation file type: {conv_path.suffix}")

    logger.info("Loaded %d conversations from %s", len(conversations), conv_path)
    return conversations


def _rule_text(entry: Any) -> str:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        value = entry.get("value")
        if isinstance(value, dict) and isinstance(value.get("text"), str):
            return value["text"]
        if isinstance(entry.get("text"), str):
            return entry["text"]
    raise DataFormatError(f"Rule entry has no text: {entry!r}")


def _rules_from_document(data: Any) -> str:
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        if "storeRules" in data:
            entries = data["storeRules"]
        elif "rules" in data:
            nested = data["rules"]
            entries = nested.get("storeRules") if isinstance(nested, dict) else nested
        else:
            raise DataFormatError("Rule document needs a 'storeRules' or 'rules' key")
    elif isinstance(data, list):
        entries = data
    else:
        raise DataFormatError(f"Unsupported rule document type: {type(data).__name__}")

    if not isinstance(entries, list):
        raise DataFormatError("Rule entries must be a list")
    return RULE_SEPARATOR.join(_rule_text(e) for e in entries)


def load_rules(path: str | Path) -> str:
    """Load the rule document as one text blob.

    YAML and JSON files hold named rule blocks whose texts are joined with
    a blank line. Other files are read verbatim.
    """
    rules_path = Path(path)
    text = rules_path.read_text(encoding="utf-8")
    if rules_path.suffix.lower() in {".yaml", ".yml", ".json"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise DataFormatError(f"{rules_path}: invalid rule document: {e}") from e
        text = _rules_from_document(data)
    logger.info("Loaded rules from %s (%d chars)", rules_path, len(text))
    return text


def write_rules(path: str | Path, text: str) -> Path:
    """Persist a rule document, creating parent directories."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(text, encoding="utf-8")
    return out_path


def sample_conversations(
    conversations: list[Conversation], n: int, rng: random.Random
) -> list[Conversation]:
    """Random subset of ``n`` conversations; the whole list if it is not larger."""
    if len(conversations) <= n:
        return list(conversations)
    return rng.sample(conversations, n)


__all__ = ["load_conversations", "load_rules", "write_rules", "sample_conversations"]
