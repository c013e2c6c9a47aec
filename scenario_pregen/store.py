"""Durable hand-off for generated scenarios.

The in-process cache only accelerates reads; a ``ScenarioStore`` is the system
of record. ``JsonFileStore`` keeps one JSON document per (slug, locale).
"""
from __future__ import annotations

import re
import time
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

import orjson

from .generator import content_hash

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class ScenarioStore(Protocol):
    def save(self, slug: str, locale: str, content: str, params: Dict[str, Any]) -> None:
        ...

    def load(self, slug: str, locale: str) -> Optional[Dict[str, Any]]:
        ...


class JsonFileStore:
    """Writes ``{root}/{slug}__{locale}.json``; rewriting a slug replaces the document."""

    def __init__(self, root: Union[str, Path] = Path(".cache/scenarios")):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, slug: str, locale: str) -> Path:
        return self.root / f"{_UNSAFE.sub('_', slug)}__{_UNSAFE.sub('_', locale)}.json"

    def save(self, slug: str, locale: str, content: str, params: Dict[str, Any]) -> None:
        payload = {
            "slug": slug,
            "locale": locale,
            "params": params,
            "content": content,
            "content_hash": content_hash(content),
            "created_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        }
        path = self.path_for(slug, locale)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        tmp.replace(path)

    def load(self, slug: str, locale: str) -> Optional[Dict[str, Any]]:
        path = self.path_for(slug, locale)
        if not path.exists():
            return None
        return orjson.loads(path.read_bytes())

    def __len__(self) -> int:
        return sum(1 for _ in self.root.glob("*.json"))


__all__ = ["ScenarioStore", "JsonFileStore"]
