# src/bithab/db.py
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import quote
from supabase import create_client, Client

from .config import Settings
from .errors import DocumentStoreError
from .logger import get_logger

logger = get_logger(__name__)


class DocumentStore:
    """
    Key-value document service addressed by user id.
    Calls are blocking; the sync engine runs them off the event loop.
    """

    def get(self, key: str) -> dict | None:
        raise NotImplementedError

    def set(self, key: str, document: dict) -> None:
        raise NotImplementedError

    def update(self, key: str, partial: dict) -> None:
        raise NotImplementedError

    def delete_where(self, collection: str, field: str, value) -> int:
        raise NotImplementedError


# -------------------------------
# SUPABASE
# -------------------------------
class SupabaseDocumentStore(DocumentStore):
    """One row per user: user_documents(user_id, document jsonb, updated_at)."""

    def __init__(self, client: Client, table: str = "user_documents"):
        self.client = client
        self.table = table

    def get(self, key: str) -> dict | None:
        try:
            resp = self.client.table(self.table).select("document").eq("user_id", key).execute()
        except Exception as e:
            raise DocumentStoreError(f"Failed to read document for {key}: {e}") from e
        if resp.data:
            return resp.data[0].get("document")
        return None

    def set(self, key: str, document: dict) -> None:
        row = {
            "user_id": key,
            "document": document,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self.client.table(self.table).upsert(row).execute()
        except Exception as e:
            raise DocumentStoreError(f"Failed to write document for {key}: {e}") from e

    def update(self, key: str, partial: dict) -> None:
        # jsonb fields cannot be merged through the table API, so read-merge-write
        current = self.get(key) or {}
        current.update(partial)
        self.set(key, current)

    def delete_where(self, collection: str, field: str, value) -> int:
        try:
            resp = self.client.table(collection).delete().eq(field, value).execute()
        except Exception as e:
            raise DocumentStoreError(f"Failed to delete from {collection}: {e}") from e
        return len(resp.data or [])


# -------------------------------
# JSON FILES (OFFLINE)
# -------------------------------
class JsonFileDocumentStore(DocumentStore):
    """
    Documents kept as <data_dir>/documents/<key>.json, sub-collections as
    <data_dir>/collections/<name>.json lists. Names are percent-encoded so
    distinct keys never share a file.
    """

    def __init__(self, data_dir: str | os.PathLike):
        self.data_dir = Path(data_dir)
        self.documents_dir = self.data_dir / "documents"
        self.collections_dir = self.data_dir / "collections"
        self.documents_dir.mkdir(parents=True, exist_ok=True)
        self.collections_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _file_name(name: str) -> str:
        return f"{quote(name, safe='')}.json"

    def _document_path(self, key: str) -> Path:
        return self.documents_dir / self._file_name(key)

    def _collection_path(self, name: str) -> Path:
        return self.collections_dir / self._file_name(name)

    def _read(self, path: Path):
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise DocumentStoreError(f"Failed to read {path}: {e}") from e

    def _write(self, path: Path, data) -> None:
        tmp = path.with_name(path.name + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, path)
        except OSError as e:
            raise DocumentStoreError(f"Failed to write {path}: {e}") from e

    def get(self, key: str) -> dict | None:
        return self._read(self._document_path(key))

    def set(self, key: str, document: dict) -> None:
        self._write(self._document_path(key), document)

    def update(self, key: str, partial: dict) -> None:
        current = self.get(key) or {}
        current.update(partial)
        self.set(key, current)

    def delete_where(self, collection: str, field: str, value) -> int:
        path = self._collection_path(collection)
        rows = self._read(path) or []
        kept = [row for row in rows if row.get(field) != value]
        if len(kept) != len(rows):
            self._write(path, kept)
        return len(rows) - len(kept)


def create_document_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "json":
        logger.info(f"Using JSON document store in {settings.data_dir}")
        return JsonFileDocumentStore(settings.data_dir)
    if settings.store_backend != "supabase":
        raise ValueError(f"Unknown store backend: {settings.store_backend}")
    if not settings.supabase_url or not settings.supabase_key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set for the supabase backend")
    client = create_client(settings.supabase_url, settings.supabase_key)
    return SupabaseDocumentStore(client, settings.documents_table)
