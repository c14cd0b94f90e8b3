"""Secret store abstraction + in-memory and JSON file implementations."""

import asyncio
import json
import os
import tempfile
from abc import ABC, abstractmethod

from wordgpt_client.logging.structured import get_logger

logger = get_logger("secret_store")


class SecretStore(ABC):
    """Persists opaque serialized blobs under a record key."""

    @abstractmethod
    async def read(self, key: str) -> str | None:
        """Return the blob stored under key, or None if absent."""
        ...

    @abstractmethod
    async def write(self, key: str, blob: str) -> None:
        ...


class MemorySecretStore(SecretStore):
    """Dict-backed store. State lives only as long as the instance."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._records: dict[str, str] = dict(initial or {})

    async def read(self, key: str) -> str | None:
        return self._records.get(key)

    async def write(self, key: str, blob: str) -> None:
        self._records[key] = blob


class JSONFileSecretStore(SecretStore):
    """File-backed store: one JSON object mapping record key → blob.

    Writes go to a temp file in the same directory and are swapped in
    with os.replace so a crash never leaves a half-written file.
    """

    def __init__(self, path: str):
        self._path = path

    def _read_all(self) -> dict[str, str]:
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            # Next write replaces the corrupt file
            logger.error(
                "Secret store file is not valid JSON, treating it as empty",
                extra={"audit_data": {"path": self._path}},
            )
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, records: dict[str, str]) -> None:
        directory = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f)
            os.replace(tmp_path, self._path)
        except BaseException:
            os.unlink(tmp_path)
            raise

    async def read(self, key: str) -> str | None:
        records = await asyncio.to_thread(self._read_all)
        return records.get(key)

    async def write(self, key: str, blob: str) -> None:
        def _update() -> None:
            records = self._read_all()
            records[key] = blob
            self._write_all(records)

        await asyncio.to_thread(_update)
