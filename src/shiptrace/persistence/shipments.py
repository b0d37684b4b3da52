"""Shipment record store backed by Supabase, with an in-memory fallback."""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from functools import lru_cache
from typing import Any, Protocol

from ..config import settings
from ..db.supabase import get_supabase_client

logger = logging.getLogger(__name__)


class ShipmentStore(Protocol):
    """Document store keyed by record id or tracking id.

    Identifiers resolve against the record ``id`` first, then the exact
    ``trackingId``, then the ``trackingId`` ignoring case.
    """

    def find_one(self, identifier: str) -> dict | None: ...

    def find_one_and_update(self, identifier: str, patch: dict) -> dict | None: ...

    def find_one_and_delete(self, identifier: str) -> dict | None: ...

    def insert_one(self, document: dict) -> dict: ...

    def find(self, *, skip: int = 0, limit: int = 100) -> list[dict]: ...

    def count_documents(self) -> int: ...


def _new_record_id() -> str:
    return uuid.uuid4().hex


class InMemoryShipmentStore:
    """Process-local store used for development without Supabase and in tests."""

    def __init__(self, documents: list[dict] | None = None) -> None:
        self._lock = threading.Lock()
        self._documents: dict[str, dict] = {}
        for document in documents or []:
            self.insert_one(document)

    def _resolve_id(self, identifier: str) -> str | None:
        if identifier in self._documents:
            return identifier
        for record_id, document in self._documents.items():
            if document.get("trackingId") == identifier:
                return record_id
        lowered = identifier.lower()
        for record_id, document in self._documents.items():
            if str(document.get("trackingId") or "").lower() == lowered:
                return record_id
        return None

    def find_one(self, identifier: str) -> dict | None:
        with self._lock:
            record_id = self._resolve_id(identifier)
            return copy.deepcopy(self._documents[record_id]) if record_id else None

    def find_one_and_update(self, identifier: str, patch: dict) -> dict | None:
        with self._lock:
            record_id = self._resolve_id(identifier)
            if record_id is None:
                return None
            document = self._documents[record_id]
            document.update(copy.deepcopy(patch))
            document["id"] = record_id
            return copy.deepcopy(document)

    def find_one_and_delete(self, identifier: str) -> dict | None:
        with self._lock:
            record_id = self._resolve_id(identifier)
            if record_id is None:
                return None
            return self._documents.pop(record_id)

    def insert_one(self, document: dict) -> dict:
        stored = copy.deepcopy(document)
        stored["id"] = str(stored.get("id") or _new_record_id())
        with self._lock:
            self._documents[stored["id"]] = stored
        return copy.deepcopy(stored)

    def find(self, *, skip: int = 0, limit: int = 100) -> list[dict]:
        with self._lock:
            ordered = sorted(
                self._documents.values(),
                key=lambda document: str(document.get("createdAt") or ""),
                reverse=True,
            )
            return [copy.deepcopy(document) for document in ordered[skip : skip + limit]]

    def count_documents(self) -> int:
        with self._lock:
            return len(self._documents)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SupabaseShipmentStore:
    """Rows of ``(id, tracking_id, created_at, document jsonb)`` in a Supabase table."""

    def __init__(self, client: Any, table: str | None = None) -> None:
        self.client = client
        self.table = table or settings.shipments_table

    def _query(self):
        return self.client.table(self.table)

    def _find_row(self, identifier: str) -> dict | None:
        lookups = (
            lambda: self._query().select("*").eq("id", identifier).limit(1).execute(),
            lambda: self._query().select("*").eq("tracking_id", identifier).limit(1).execute(),
            lambda: self._query().select("*").ilike("tracking_id", _escape_like(identifier)).limit(1).execute(),
        )
        for lookup in lookups:
            response = lookup()
            if response.data:
                return response.data[0]
        return None

    @staticmethod
    def _to_document(row: dict) -> dict:
        document = dict(row.get("document") or {})
        document["id"] = row["id"]
        return document

    def find_one(self, identifier: str) -> dict | None:
        row = self._find_row(identifier)
        return self._to_document(row) if row else None

    def find_one_and_update(self, identifier: str, patch: dict) -> dict | None:
        row = self._find_row(identifier)
        if row is None:
            return None
        merged = {**(row.get("document") or {}), **patch}
        merged.pop("id", None)
        response = (
            self._query()
            .update({"document": merged, "tracking_id": merged.get("trackingId")})
            .eq("id", row["id"])
            .execute()
        )
        if not response.data:
            return None
        return self._to_document(response.data[0])

    def find_one_and_delete(self, identifier: str) -> dict | None:
        row = self._find_row(identifier)
        if row is None:
            return None
        response = self._query().delete().eq("id", row["id"]).execute()
        if not response.data:
            return None
        return self._to_document(response.data[0])

    def insert_one(self, document: dict) -> dict:
        record_id = str(document.get("id") or _new_record_id())
        body = {key: value for key, value in document.items() if key != "id"}
        payload = {
            "id": record_id,
            "tracking_id": body.get("trackingId"),
            "created_at": body.get("createdAt"),
            "document": body,
        }
        response = self._query().insert(payload).execute()
        row = response.data[0] if response.data else payload
        return self._to_document(row)

    def find(self, *, skip: int = 0, limit: int = 100) -> list[dict]:
        response = (
            self._query()
            .select("*")
            .order("created_at", desc=True)
            .range(skip, skip + limit - 1)
            .execute()
        )
        return [self._to_document(row) for row in (response.data or [])]

    def count_documents(self) -> int:
        response = self._query().select("id", count="exact").limit(1).execute()
        return int(response.count or 0)


@lru_cache()
def get_shipment_store() -> ShipmentStore:
    """Supabase store when credentials are configured, otherwise a process-wide in-memory store."""
    client = get_supabase_client()
    if client is None:
        logger.warning("Supabase not configured - shipment records are kept in memory only")
        return InMemoryShipmentStore()
    return SupabaseShipmentStore(client)
