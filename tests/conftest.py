"""Shared fixtures: an in-memory catalog backend served through httpx.MockTransport."""

import asyncio
import json
from datetime import datetime, timezone
from typing import Callable

import httpx
import pytest
import pytest_asyncio

from catalog.api.client import CatalogClient
from catalog.core.config import CatalogConfig
from catalog.core.controller import CatalogController

BASE_URL = "http://catalog.test"

_FIELDS = (
    "title", "authors", "journal", "year", "volume", "issue", "pages",
    "doi", "url", "abstract", "keywords",
)
_SEARCHABLE = ("title", "authors", "journal", "abstract", "keywords")


# ── Fake Backend ─────────────────────────────────────────────────────


class FakeBackend:
    """Mimics the catalog REST API and records every request it receives."""

    def __init__(self):
        self.records: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.next_id = 1
        self.failures: dict[tuple[str, str], tuple[int, dict] | Exception] = {}
        self.search_delays: dict[str, float] = {}
        self.search_failures: set[str] = set()
        self.overrides: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    # ── Setup helpers ────────────────────────────────────────

    def add(self, created_at: str | None = None, **fields) -> dict:
        rec = {name: fields.get(name, 0 if name == "year" else "") for name in _FIELDS}
        rec["id"] = str(fields.get("id") or self._new_id())
        now = created_at or _now()
        rec["created_at"] = now
        rec["updated_at"] = now
        self.records[rec["id"]] = rec
        return rec

    def fail(self, method: str, path: str, status: int = 500, body: dict | None = None):
        self.failures[(method, path)] = (
            status, body if body is not None else {"error": "internal error"}
        )

    def fail_transport(self, method: str, path: str):
        self.failures[(method, path)] = httpx.ConnectError("connection refused")

    def respond(self, method: str, path: str, reply: Callable[[httpx.Request], httpx.Response]):
        """Answer ``method path`` with whatever ``reply`` builds."""
        self.overrides[(method, path)] = reply

    def calls(self, method: str | None = None, path: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if (method is None or r.method == method)
            and (path is None or r.url.path == path)
        ]

    def _new_id(self) -> str:
        while str(self.next_id) in self.records:
            self.next_id += 1
        new = str(self.next_id)
        self.next_id += 1
        return new

    # ── Routing ──────────────────────────────────────────────

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, request.url.path

        override = self.overrides.get((method, path))
        if override is not None:
            return override(request)

        failure = self.failures.get((method, path))
        if isinstance(failure, Exception):
            raise type(failure)(str(failure), request=request)
        if failure is not None:
            status, body = failure
            return _json(body, status=status)

        if path == "/api/citations":
            if method == "GET":
                return _json(self._sorted(self.records.values()) or None)
            if method == "POST":
                return self._create(json.loads(request.content))
        elif path.startswith("/api/citations/"):
            cid = path.rsplit("/", 1)[1]
            if method == "GET":
                return self._get(cid)
            if method == "PUT":
                return self._update(cid, json.loads(request.content))
            if method == "DELETE":
                self.records.pop(cid, None)
                return _json({"message": "Citation deleted"})
        elif path == "/api/search" and method == "GET":
            return await self._search(request.url.params.get("q", ""))
        elif path == "/api/export" and method == "GET":
            return self._export(request.url.params.get("format") or "json")

        return httpx.Response(404, json={"error": "not found"})

    def _create(self, body: dict) -> httpx.Response:
        rec = self.add(**{k: body.get(k) for k in _FIELDS if k in body})
        return _json(rec, status=201)

    def _get(self, cid: str) -> httpx.Response:
        if cid not in self.records:
            return httpx.Response(404, json={"error": "Citation not found"})
        return _json(self.records[cid])

    def _update(self, cid: str, body: dict) -> httpx.Response:
        rec = self.records.setdefault(cid, {"id": cid, "created_at": _now()})
        rec.update({k: body.get(k) for k in _FIELDS})
        rec["updated_at"] = _now()
        return _json(rec)

    async def _search(self, q: str) -> httpx.Response:
        if not q:
            return httpx.Response(400, json={"error": "Search query is required"})
        delay = self.search_delays.get(q)
        if delay:
            await asyncio.sleep(delay)
        if q in self.search_failures:
            return httpx.Response(500, json={"error": "search backend unavailable"})
        needle = q.lower()
        hits = [
            r for r in self.records.values()
            if any(needle in str(r.get(f) or "").lower() for f in _SEARCHABLE)
        ]
        return _json(self._sorted(hits) or None)

    def _export(self, fmt: str) -> httpx.Response:
        rows = self._sorted(self.records.values())
        if fmt == "json":
            return _json(rows)
        if fmt == "bibtex":
            body = "".join(f"@article{{{r['id']},\n  title = {{{r['title']}}},\n}}\n\n" for r in rows)
            return httpx.Response(
                200,
                text=body,
                headers={"Content-Disposition": "attachment; filename=citations.bib"},
            )
        if fmt == "csv":
            body = "Title,Year\n" + "".join(f"\"{r['title']}\",{r['year']}\n" for r in rows)
            return httpx.Response(
                200,
                text=body,
                headers={"Content-Disposition": "attachment; filename=citations.csv"},
            )
        return httpx.Response(400, json={"error": "Unsupported format"})

    @staticmethod
    def _sorted(records) -> list[dict]:
        return sorted(records, key=lambda r: r["created_at"], reverse=True)


def _json(data, status: int = 200) -> httpx.Response:
    return httpx.Response(
        status,
        content=json.dumps(data).encode(),
        headers={"Content-Type": "application/json"},
    )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture()
def backend():
    return FakeBackend()


@pytest.fixture()
def config(tmp_path):
    return CatalogConfig(
        base_url=BASE_URL,
        notification_delay=0.05,
        export_dir=tmp_path / "exports",
    )


@pytest_asyncio.fixture()
async def client(backend, config):
    c = CatalogClient(config, transport=httpx.MockTransport(backend.handle))
    yield c
    await c.aclose()


@pytest.fixture()
def confirmations():
    """Answers handed to the delete confirmation prompt; default is yes."""
    return {"answer": True, "asked": []}


@pytest.fixture()
def controller(client, config, confirmations):
    def confirm(message: str) -> bool:
        confirmations["asked"].append(message)
        return confirmations["answer"]

    return CatalogController(client, config, confirm=confirm)
