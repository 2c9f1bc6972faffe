"""JSON-file store for preview records."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any

DEFAULT_CATEGORY = "Uncategorized"


@dataclass(frozen=True)
class PreviewRecord:
    id: str
    website_url: str
    chatbot_script: str
    created_at: str
    category: str = DEFAULT_CATEGORY
    name: str | None = None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> PreviewRecord:
        return cls(
            id=str(payload["id"]),
            website_url=str(payload["website_url"]),
            chatbot_script=str(payload["chatbot_script"]),
            created_at=str(payload.get("created_at", "")),
            category=payload.get("category") or DEFAULT_CATEGORY,
            name=payload.get("name"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PreviewStore:
    """Keeps preview records in ``<data_dir>/previews.json`` as ``{"previews": [...]}``."""

    def __init__(self, data_dir: str | Path, *, logger: logging.Logger) -> None:
        self._path = Path(data_dir) / "previews.json"
        self._logger = logger
        self._lock = Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> list[dict[str, Any]]:
        if not self._path.exists():
            return []
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            self._logger.warning("Ignoring unreadable preview file %s: %s", self._path, exc)
            return []
        previews = payload.get("previews", []) if isinstance(payload, dict) else []
        return [item for item in previews if isinstance(item, dict)]

    def _write(self, previews: list[dict[str, Any]]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps({"previews": previews}, indent=2), encoding="utf-8")

    def create(
        self,
        website_url: str,
        chatbot_script: str,
        *,
        category: str = DEFAULT_CATEGORY,
        name: str | None = None,
        record_id: str | None = None,
    ) -> PreviewRecord:
        record = PreviewRecord(
            id=record_id or str(uuid.uuid4()),
            website_url=website_url,
            chatbot_script=chatbot_script,
            created_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            category=category or DEFAULT_CATEGORY,
            name=name,
        )
        with self._lock:
            previews = self._read()
            previews.append(record.to_dict())
            self._write(previews)
        self._logger.info("Created preview %s for %s", record.id, website_url)
        return record

    def get(self, record_id: str) -> PreviewRecord | None:
        with self._lock:
            previews = self._read()
        for item in previews:
            if item.get("id") == record_id:
                return PreviewRecord.from_dict(item)
        return None

    def delete(self, record_id: str) -> None:
        with self._lock:
            previews = self._read()
            remaining = [item for item in previews if item.get("id") != record_id]
            if len(remaining) != len(previews):
                self._write(remaining)

    def list_records(self) -> list[PreviewRecord]:
        with self._lock:
            previews = self._read()
        records = [PreviewRecord.from_dict(item) for item in previews]
        return sorted(records, key=lambda record: record.created_at, reverse=True)
