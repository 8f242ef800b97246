"""Catalog controller: fetch, render, search, save, delete, export."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from catalog.api.client import CatalogAPIError, CatalogClient
from catalog.api.models import Citation, CitationInput
from catalog.core.config import CatalogConfig
from catalog.views.display import Display
from catalog.views.notifications import NotificationCenter
from catalog.views.viewmodels import build_card, build_detail, compute_statistics

logger = logging.getLogger(__name__)


def _decline(message: str) -> bool:
    return False


class CatalogController:
    """Owns the displayed snapshot and the current-citation slot.

    Every operation is one request followed by a wholesale display update.
    Failures never propagate; they become notifications.
    """

    def __init__(
        self,
        client: CatalogClient,
        config: CatalogConfig,
        display: Optional[Display] = None,
        notifications: Optional[NotificationCenter] = None,
        confirm: Callable[[str], bool] = _decline,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.client = client
        self.config = config
        self.messages = config.messages
        self.display = display or Display()
        self.notifications = notifications or NotificationCenter(
            delay=config.notification_delay
        )
        self.confirm = confirm
        self.clock = clock

        self.citations: list[Citation] = []
        self.current: Optional[Citation] = None
        self.viewed: Optional[Citation] = None
        self.last_query = ""
        self._dispatched = 0

    # ── Load / Search ────────────────────────────────────────

    async def load_all(self) -> None:
        """Fetch every citation and replace the snapshot."""
        seq = self._next_seq()
        self.display.show_loading(True)
        try:
            citations = await self.client.list_citations()
        except CatalogAPIError as exc:
            logger.error("Loading citations failed: %s", exc)
            if not self._is_stale(seq, "load"):
                self.notifications.push(self.messages.load_failed, "error")
            return
        finally:
            self._done_loading(seq)

        if self._is_stale(seq, "load"):
            return
        self.citations = citations
        self.last_query = ""
        self.render(citations)

    async def search(self, query: str) -> None:
        """Search by trimmed query; an empty query is a plain load-all."""
        query = (query or "").strip()
        if not query:
            await self.load_all()
            return

        seq = self._next_seq()
        self.display.show_loading(True)
        try:
            results = await self.client.search_citations(query)
        except CatalogAPIError as exc:
            logger.error("Search %r failed: %s", query, exc)
            if not self._is_stale(seq, "search"):
                self.notifications.push(self.messages.search_failed, "error")
            return
        finally:
            self._done_loading(seq)

        if self._is_stale(seq, "search"):
            return
        self.citations = results
        self.last_query = query
        self.render(results, query=query)

    def _next_seq(self) -> int:
        self._dispatched += 1
        return self._dispatched

    def _is_stale(self, seq: int, what: str) -> bool:
        if seq != self._dispatched:
            logger.debug(
                "Discarding %s response #%d (latest dispatched #%d)",
                what,
                seq,
                self._dispatched,
            )
            return True
        return False

    def _done_loading(self, seq: int) -> None:
        # Only the latest dispatched request owns the loading indicator.
        if seq == self._dispatched:
            self.display.show_loading(False)

    # ── Rendering ────────────────────────────────────────────

    def render(self, citations: list[Citation], query: str = "") -> None:
        """Rebuild every card and the statistics panel."""
        markers = tuple(self.config.highlight)
        cards = [build_card(c, self.messages, query, markers) for c in citations]
        self.display.render_cards(cards)
        self.display.render_statistics(compute_statistics(citations, self.clock()))

    # ── Edit Dialog ──────────────────────────────────────────

    def open_add(self) -> None:
        self.current = None
        self.display.edit_dialog.open_for_create(self.messages.add_title)

    def open_edit(self, citation: Citation) -> None:
        self.current = citation
        self.display.edit_dialog.open_for_edit(citation, self.messages.edit_title)

    def cancel_edit(self) -> None:
        self.display.edit_dialog.close()

    async def save(self) -> bool:
        """Create or update from the form. Returns True when the backend accepted it."""
        payload = CitationInput.from_form(self.display.edit_dialog.form)
        if not payload.has_title():
            self.notifications.push(self.messages.title_required, "error")
            return False

        is_edit = self.current is not None and self.current.id is not None
        try:
            if is_edit:
                await self.client.update_citation(self.current.id, payload)
            else:
                await self.client.create_citation(payload)
        except CatalogAPIError as exc:
            logger.error("Saving citation failed: %s", exc)
            self.notifications.push(exc.message or self.messages.save_failed, "error")
            return False

        self.notifications.push(
            self.messages.updated if is_edit else self.messages.created, "success"
        )
        self.display.edit_dialog.close()
        await self.load_all()
        return True

    # ── Details ──────────────────────────────────────────────

    async def view_details(self, citation_id: str) -> Optional[Citation]:
        """Fetch the full record and open the read-only panel."""
        try:
            citation = await self.client.get_citation(citation_id)
        except CatalogAPIError as exc:
            logger.error("Loading citation %s failed: %s", citation_id, exc)
            self.notifications.push(self.messages.details_failed, "error")
            return None

        self.viewed = citation
        detail = build_detail(citation, self.messages, self.config.timestamp_format)
        self.display.view_dialog.open(detail)
        return citation

    def edit_from_view(self) -> bool:
        """Switch from the detail panel to editing the same record, by id."""
        self.display.view_dialog.close()
        if self.viewed is None:
            logger.debug("Nothing viewed; edit-from-view ignored")
            return False
        self.open_edit(self.viewed)
        return True

    # ── Delete ───────────────────────────────────────────────

    async def delete(self, citation_id: str) -> bool:
        if not self.confirm(self.messages.confirm_delete):
            logger.info("Delete of %s cancelled", citation_id)
            return False

        try:
            await self.client.delete_citation(citation_id)
        except CatalogAPIError as exc:
            logger.error("Deleting citation %s failed: %s", citation_id, exc)
            self.notifications.push(self.messages.delete_failed, "error")
            return False

        self.notifications.push(self.messages.deleted, "success")
        await self.load_all()
        return True

    # ── Export ───────────────────────────────────────────────

    async def export(
        self, fmt: str, dest_dir: str | Path | None = None
    ) -> Optional[Path]:
        """Download the backend's export file for ``fmt``."""
        dest = dest_dir if dest_dir is not None else self.config.export_dir
        try:
            path = await self.client.download_export(fmt, dest)
        except CatalogAPIError as exc:
            logger.error("Export %s failed: %s", fmt, exc)
            self.notifications.push(self.messages.export_failed, "error")
            return None

        self.notifications.push(
            self.messages.exported.format(format=fmt.upper()), "success"
        )
        return path
