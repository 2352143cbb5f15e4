from __future__ import annotations

import json
import os
import threading
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from .models import EmailTemplateRecord
from .utils import atomic_write, slugify


class TemplateRepositoryError(RuntimeError):
    """Raised when a template record cannot be created."""


class TemplateRepository(Protocol):
    def create_template(
        self,
        *,
        name: str,
        editor_type: str,
        json: dict[str, Any],
        source_html: str | None,
        subject: str,
        category: str,
        created_by: str | None,
    ) -> EmailTemplateRecord:  # pragma: no cover - interface
        ...


def _build_record(
    *,
    name: str,
    editor_type: str,
    json: dict[str, Any],
    source_html: str | None,
    subject: str,
    category: str,
    created_by: str | None,
) -> EmailTemplateRecord:
    for field_name, value in (("name", name), ("editor_type", editor_type), ("category", category)):
        if not value or not value.strip():
            raise TemplateRepositoryError(f"Template {field_name} is required")
    if not json:
        raise TemplateRepositoryError("Template json is required")
    return EmailTemplateRecord(
        id=uuid.uuid4().hex,
        name=name,
        editor_type=editor_type,
        json=json,
        source_html=source_html,
        subject=subject,
        category=category,
        created_by=created_by,
        created_at=datetime.now(timezone.utc),
    )


class InMemoryTemplateRepository:
    def __init__(self) -> None:
        self._records: dict[str, EmailTemplateRecord] = {}
        self._lock = threading.Lock()

    def create_template(self, **fields: Any) -> EmailTemplateRecord:
        record = _build_record(**fields)
        with self._lock:
            if record.name in self._records:
                raise TemplateRepositoryError(f"Template name already taken: {record.name}")
            self._records[record.name] = record
        return record

    def get(self, name: str) -> EmailTemplateRecord | None:
        with self._lock:
            return self._records.get(name)

    def records(self) -> list[EmailTemplateRecord]:
        with self._lock:
            return list(self._records.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class JsonFileTemplateRepository:
    """One ``<slug>.json`` document per template under *directory*."""

    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._lock = threading.Lock()

    def path_for(self, name: str) -> Path:
        return self._directory / f"{slugify(name)}.json"

    def create_template(self, **fields: Any) -> EmailTemplateRecord:
        record = _build_record(**fields)
        path = self.path_for(record.name)
        payload = asdict(record)
        payload["created_at"] = record.created_at.isoformat()
        data = json.dumps(payload, ensure_ascii=False, indent=2)
        with self._lock:
            self._directory.mkdir(parents=True, exist_ok=True)
            try:
                # reserve the name so concurrent writers cannot both succeed
                fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError as exc:
                raise TemplateRepositoryError(f"Template name already taken: {record.name}") from exc
            os.close(fd)
            try:
                atomic_write(path, data)
            except OSError as exc:
                path.unlink(missing_ok=True)
                raise TemplateRepositoryError(f"Failed to write template {record.name}: {exc}") from exc
        return record

    def load(self, name: str) -> dict[str, Any] | None:
        path = self.path_for(name)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))


__all__ = [
    "InMemoryTemplateRepository",
    "JsonFileTemplateRepository",
    "TemplateRepository",
    "TemplateRepositoryError",
]
