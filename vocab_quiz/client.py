"""Async HTTP client for the vocabulary API.

Exposes the same repository methods as ``Database`` so a
``QuizSessionController`` can run against a remote server.
"""
from __future__ import annotations

import logging

import httpx

from vocab_quiz.errors import TransportError, error_for_status
from vocab_quiz.models import BulkResult, VocabularyEntry

log = logging.getLogger("vocab_quiz.client")

REQUIRED_FIELDS = ("english", "thai", "level")


class VocabularyClient:
    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8765",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport,
        )

    async def __aenter__(self) -> VocabularyClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs):
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            log.warning("%s %s failed: %s", method, url, e)
            raise TransportError(f"Vocabulary service unreachable: {e}") from e
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.is_error:
            message = body.get("error") if isinstance(body, dict) else None
            raise error_for_status(resp.status_code, message or resp.reason_phrase)
        return body.get("data") if isinstance(body, dict) else None

    async def list_vocabulary(self, level: str | None = None) -> list[VocabularyEntry]:
        params = {"level": level} if level else None
        data = await self._request("GET", "/api/vocabulary", params=params)
        return [VocabularyEntry.from_dict(d) for d in data or []]

    async def get_vocabulary(self, entry_id: int) -> VocabularyEntry:
        data = await self._request("GET", f"/api/vocabulary/{entry_id}")
        return VocabularyEntry.from_dict(data)

    async def create_vocabulary(self, entry: VocabularyEntry) -> VocabularyEntry:
        payload = {
            "english": entry.english,
            "thai": entry.thai,
            "level": entry.level,
            "category": entry.category,
        }
        data = await self._request("POST", "/api/vocabulary", json=payload)
        return VocabularyEntry.from_dict(data)

    async def update_vocabulary(self, entry_id: int, patch: dict) -> VocabularyEntry:
        data = await self._request("PUT", f"/api/vocabulary/{entry_id}", json=patch)
        return VocabularyEntry.from_dict(data)

    async def delete_vocabulary(self, entry_id: int) -> VocabularyEntry:
        data = await self._request("DELETE", f"/api/vocabulary/{entry_id}")
        return VocabularyEntry.from_dict(data)

    async def delete_all_vocabulary(self) -> None:
        await self._request("DELETE", "/api/vocabulary")

    async def bulk_upsert(self, entries: list[VocabularyEntry | dict]) -> BulkResult:
        payload = []
        for e in entries:
            d = e.to_dict() if isinstance(e, VocabularyEntry) else dict(e)
            if not all(d.get(k) for k in REQUIRED_FIELDS):
                continue
            item = {k: d[k] for k in REQUIRED_FIELDS}
            if d.get("category"):
                item["category"] = d["category"]
            payload.append(item)
        data = await self._request("POST", "/api/vocabulary/bulk", json=payload)
        return BulkResult(
            inserted=data["upserted_count"],
            modified=data["modified_count"],
            matched=data["matched_count"],
        )

    async def import_text(self, text: str, level: str) -> BulkResult:
        data = await self._request(
            "POST", "/api/vocabulary/import", json={"text": text, "level": level},
        )
        return BulkResult(
            inserted=data["upserted_count"],
            modified=data["modified_count"],
            matched=data["matched_count"],
        )
