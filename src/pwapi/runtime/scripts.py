"""Stored script registry (in-memory/file V1; Redis for shared deployments).

A script document is a reusable capability payload addressed by key:
``{"type": "actions", "dsl": {...}, "defaults": {...}, "enabled": true}``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..config.settings import Settings

logger = logging.getLogger(__name__)

SCRIPT_KEY_PREFIX = "script:"


@dataclass
class ScriptDocument:
    type: str
    dsl: dict[str, Any] = field(default_factory=dict)
    defaults: dict[str, Any] = field(default_factory=dict)
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScriptDocument:
        return cls(
            type=str(data.get("type") or ""),
            dsl=data.get("dsl") or {},
            defaults=data.get("defaults") or {},
            enabled=bool(data.get("enabled", True)),
        )


class InMemoryScriptStore:
    def __init__(self, scripts: dict[str, ScriptDocument] | None = None) -> None:
        self._scripts: dict[str, ScriptDocument] = dict(scripts or {})

    @classmethod
    def from_file(cls, path: Path) -> InMemoryScriptStore:
        raw = json.loads(path.read_text(encoding="utf-8"))
        scripts = {key: ScriptDocument.from_dict(doc) for key, doc in raw.items()}
        logger.info("Loaded %d scripts from %s", len(scripts), path)
        return cls(scripts)

    def put(self, key: str, document: ScriptDocument) -> None:
        self._scripts[key] = document

    async def get(self, key: str) -> ScriptDocument | None:
        return self._scripts.get(key)

    async def close(self) -> None:
        return None


class RedisScriptStore:
    def __init__(self, url: str) -> None:
        import redis.asyncio as redis  # lazy import

        self._r = redis.Redis.from_url(url, decode_responses=True)

    async def get(self, key: str) -> ScriptDocument | None:
        val = await self._r.get(f"{SCRIPT_KEY_PREFIX}{key}")
        if not val:
            return None
        return ScriptDocument.from_dict(json.loads(val))

    async def close(self) -> None:
        await self._r.aclose()


ScriptStore = InMemoryScriptStore | RedisScriptStore


def get_script_store(settings: Settings) -> ScriptStore | None:
    """Build the configured store, or None when scripts are disabled."""
    backend = (settings.script_backend or "none").lower()
    if backend == "redis":
        return RedisScriptStore(settings.redis_url)
    if backend == "file":
        return InMemoryScriptStore.from_file(Path(settings.scripts_file))
    if backend == "memory":
        return InMemoryScriptStore()
    return None
