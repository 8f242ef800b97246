"""Async REST client for the citation catalog backend, built on httpx."""

import logging
import re
from pathlib import Path
from typing import Optional

import httpx
from pydantic import ValidationError

from catalog.api.models import Citation, CitationInput
from catalog.core.config import CatalogConfig

logger = logging.getLogger(__name__)

_FILENAME_RE = re.compile(r'filename\*?=(?:UTF-8\'\')?"?([^";]+)"?', re.IGNORECASE)


class CatalogAPIError(Exception):
    """A request failed before a usable response arrived, or returned a non-2xx status.

    ``status_code`` is None for transport, decoding and local file failures.
    ``message`` carries the backend's ``error`` text when the body provided one.
    """

    def __init__(self, status_code: Optional[int], message: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        detail = message or "no error detail"
        if status_code is None:
            super().__init__(f"Request failed: {detail}")
        else:
            super().__init__(f"HTTP {status_code}: {detail}")


# ── Client ───────────────────────────────────────────────────────────


class CatalogClient:
    """Thin wrapper over the catalog's fixed set of endpoints."""

    def __init__(
        self,
        config: CatalogConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = config.base_url
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.timeout),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()

    # ── Reads ────────────────────────────────────────────────

    async def list_citations(self) -> list[Citation]:
        """GET /api/citations."""
        data = await self._request_json("GET", "/api/citations")
        citations = _parse_list(data)
        logger.info("Loaded %d citations", len(citations))
        return citations

    async def search_citations(self, query: str) -> list[Citation]:
        """GET /api/search?q=<query>."""
        data = await self._request_json("GET", "/api/search", params={"q": query})
        citations = _parse_list(data)
        logger.info("Search %r matched %d citations", query, len(citations))
        return citations

    async def get_citation(self, citation_id: str) -> Citation:
        """GET /api/citations/{id} — the full record."""
        data = await self._request_json("GET", f"/api/citations/{citation_id}")
        return _parse_one(data)

    # ── Writes ───────────────────────────────────────────────

    async def create_citation(self, payload: CitationInput) -> Citation:
        """POST /api/citations; the backend assigns id and timestamps."""
        data = await self._request_json(
            "POST", "/api/citations", json=payload.model_dump()
        )
        created = _parse_one(data)
        logger.info("Created citation %s", created.id)
        return created

    async def update_citation(
        self, citation_id: str, payload: CitationInput
    ) -> Citation:
        """PUT /api/citations/{id}."""
        data = await self._request_json(
            "PUT", f"/api/citations/{citation_id}", json=payload.model_dump()
        )
        logger.info("Updated citation %s", citation_id)
        return _parse_one(data)

    async def delete_citation(self, citation_id: str) -> None:
        """DELETE /api/citations/{id}; only the status matters."""
        await self._send("DELETE", f"/api/citations/{citation_id}")
        logger.info("Deleted citation %s", citation_id)

    # ── Export ───────────────────────────────────────────────

    def export_url(self, fmt: str) -> str:
        return str(
            httpx.URL(f"{self.base_url}/api/export", params={"format": fmt})
        )

    async def download_export(self, fmt: str, dest_dir: str | Path) -> Path:
        """Stream GET /api/export?format=<fmt> into a file under dest_dir.

        The filename comes from Content-Disposition when the backend sends
        one, else ``citations.<fmt>``. A download that fails part-way leaves
        no file behind.
        """
        dest = Path(dest_dir)
        partial: Optional[Path] = None
        try:
            dest.mkdir(parents=True, exist_ok=True)
            async with self._client.stream(
                "GET", "/api/export", params={"format": fmt}
            ) as response:
                if not response.is_success:
                    await response.aread()
                    raise CatalogAPIError(
                        response.status_code, _error_message(response)
                    )
                path = dest / _export_filename(response, fmt)
                with open(path, "wb") as f:
                    partial = path
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
        except (httpx.RequestError, OSError) as exc:
            logger.warning("Export %s failed: %s", fmt, exc)
            if partial is not None:
                _discard(partial)
            raise CatalogAPIError(None, str(exc)) from exc

        logger.info("Exported %s to %s", fmt, path)
        return path

    # ── Plumbing ─────────────────────────────────────────────

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise CatalogAPIError(None, str(exc)) from exc

        if not response.is_success:
            message = _error_message(response)
            logger.warning(
                "%s %s returned %d: %s",
                method,
                path,
                response.status_code,
                message,
            )
            raise CatalogAPIError(response.status_code, message)
        return response

    async def _request_json(self, method: str, path: str, **kwargs):
        response = await self._send(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise CatalogAPIError(
                response.status_code, "Response body is not valid JSON"
            ) from exc


# ── Helpers ──────────────────────────────────────────────────────────


def _parse_list(data) -> list[Citation]:
    """Validate a JSON array of citations; ``null`` means empty."""
    if data is None:
        return []
    if not isinstance(data, list):
        raise CatalogAPIError(None, f"Expected a JSON array, got {type(data).__name__}")
    return [_parse_one(item) for item in data]


def _parse_one(data) -> Citation:
    try:
        return Citation.model_validate(data)
    except ValidationError as exc:
        raise CatalogAPIError(None, f"Malformed citation in response: {exc}") from exc


def _error_message(response: httpx.Response) -> Optional[str]:
    """The ``error`` text of a failed response body, if it has one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return None


def _export_filename(response: httpx.Response, fmt: str) -> str:
    disposition = response.headers.get("content-disposition", "")
    match = _FILENAME_RE.search(disposition)
    if match:
        # Basename only; "." and ".." name directories, not files.
        name = Path(match.group(1).strip()).name
        if name not in ("", ".", ".."):
            return name
    return f"citations.{fmt}"


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove partial export %s: %s", path, exc)
