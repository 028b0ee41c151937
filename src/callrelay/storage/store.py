"""JSON-file-backed document store."""

import asyncio
import json
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ValidationError

from callrelay.errors import StoreUnavailable
from callrelay.storage.models import (
    AUTH_CODES,
    REGISTRATIONS,
    AuthCode,
    Registration,
    StoreDocument,
)

logger = structlog.get_logger()

_SECTIONS: dict[str, tuple[str, type[BaseModel]]] = {
    AUTH_CODES: ("auth_codes", AuthCode),
    REGISTRATIONS: ("registrations", Registration),
}


class DocumentStore:
    """Whole-document load/save interface.

    Every mutation is load, change in memory, save. Backends
    with per-key atomic updates can replace JsonFileStore
    behind this interface.
    """

    async def load(self) -> StoreDocument:
        raise NotImplementedError

    async def save(self, doc: StoreDocument) -> None:
        raise NotImplementedError


class JsonFileStore(DocumentStore):
    """Store backed by a single JSON file.

    No locking: concurrent writers race and the last save
    wins. File I/O runs in a worker thread so the event
    loop keeps serving other requests.

    A file that cannot be parsed as a JSON document raises
    StoreUnavailable and is never overwritten by this request.
    Individual entries that fail validation are logged and
    carried through to the next save untouched.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> StoreDocument:
        return await asyncio.to_thread(self._read)

    async def save(self, doc: StoreDocument) -> None:
        await asyncio.to_thread(self._write, doc)

    def _read(self) -> StoreDocument:
        if not self._path.exists():
            return StoreDocument()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("store_unreadable", path=str(self._path), error=str(e))
            raise StoreUnavailable("Data file is unreadable") from e
        if not isinstance(raw, dict):
            logger.error(
                "store_unreadable",
                path=str(self._path),
                error="not an object",
            )
            raise StoreUnavailable("Data file is unreadable")

        doc = StoreDocument()
        for section, (attr, model) in _SECTIONS.items():
            entries = raw.get(section) or {}
            if not isinstance(entries, dict):
                logger.error("store_section_invalid", section=section)
                raise StoreUnavailable("Data file is unreadable")
            parsed = getattr(doc, attr)
            for key, value in entries.items():
                try:
                    parsed[key] = model.model_validate(value)
                except ValidationError as e:
                    logger.warning(
                        "store_entry_invalid",
                        section=section,
                        key=key,
                        error=str(e),
                    )
                    doc.unparsed[section][key] = value
        return doc

    def _write(self, doc: StoreDocument) -> None:
        data: dict[str, Any] = doc.to_data()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(data, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
