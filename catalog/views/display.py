"""In-memory display surface (list container, dialogs) plus plain-text rendering."""

import logging
import textwrap
from enum import Enum
from typing import Optional

from catalog.api.models import Citation
from catalog.core.config import Messages
from catalog.views.viewmodels import CitationCard, CitationDetail, Statistics

logger = logging.getLogger(__name__)

FORM_FIELDS = (
    "title",
    "authors",
    "journal",
    "year",
    "volume",
    "issue",
    "pages",
    "doi",
    "url",
    "keywords",
    "abstract",
)


# ── Dialogs ──────────────────────────────────────────────────────────


class DialogMode(str, Enum):
    CLOSED = "closed"
    CREATE = "create"
    EDIT = "edit"


class EditDialog:
    """Add/edit form: closed -> create | edit -> closed."""

    def __init__(self):
        self.mode = DialogMode.CLOSED
        self.heading = ""
        self.citation_id: Optional[str] = None
        self.form: dict[str, str] = _blank_form()

    @property
    def is_open(self) -> bool:
        return self.mode is not DialogMode.CLOSED

    def open_for_create(self, heading: str) -> None:
        self.mode = DialogMode.CREATE
        self.heading = heading
        self.citation_id = None
        self.form = _blank_form()

    def open_for_edit(self, citation: Citation, heading: str) -> None:
        self.mode = DialogMode.EDIT
        self.heading = heading
        self.citation_id = citation.id
        form = {name: getattr(citation, name) for name in FORM_FIELDS if name != "year"}
        form["year"] = str(citation.year) if citation.year else ""
        self.form = form

    def set_field(self, name: str, value: str) -> None:
        if name not in FORM_FIELDS:
            raise ValueError(f"Unknown form field: {name}")
        self.form[name] = value

    def close(self) -> None:
        self.mode = DialogMode.CLOSED
        self.citation_id = None


class ViewDialog:
    """Read-only detail panel; remembers which record it shows."""

    def __init__(self):
        self.is_open = False
        self.detail: Optional[CitationDetail] = None

    @property
    def citation_id(self) -> Optional[str]:
        return self.detail.id if self.detail else None

    def open(self, detail: CitationDetail) -> None:
        self.detail = detail
        self.is_open = True

    def close(self) -> None:
        self.is_open = False


def _blank_form() -> dict[str, str]:
    return {name: "" for name in FORM_FIELDS}


# ── Display ──────────────────────────────────────────────────────────


class Display:
    """What the page shows: cards, placeholder, spinner, counters, dialogs."""

    def __init__(self):
        self.cards: list[CitationCard] = []
        self.no_results = False
        self.loading = False
        self.statistics = Statistics()
        self.edit_dialog = EditDialog()
        self.view_dialog = ViewDialog()
        self.render_count = 0

    def show_loading(self, show: bool) -> None:
        self.loading = show

    def render_cards(self, cards: list[CitationCard]) -> None:
        """Replace the container's children wholesale."""
        self.cards = list(cards)
        self.no_results = not cards
        self.render_count += 1
        logger.debug("Rendered %d cards", len(cards))

    def render_statistics(self, stats: Statistics) -> None:
        self.statistics = stats


# ── Plain-Text Rendering ─────────────────────────────────────────────


def render_card_text(card: CitationCard, width: int = 78) -> str:
    lines = [card.highlighted_title or card.title]
    if card.id:
        lines[0] = f"[{card.id}] {lines[0]}"
    lines.append(f"  {card.authors}")
    lines.append(f"  {card.journal_line}")
    if card.meta_line:
        lines.append(f"  {card.meta_line}")
    if card.abstract:
        lines.extend(
            textwrap.wrap(
                card.abstract,
                width=width,
                initial_indent="  ",
                subsequent_indent="  ",
                max_lines=3,
            )
        )
    if card.keywords:
        lines.append("  " + " ".join(f"#{k}" for k in card.keywords))
    return "\n".join(lines)


def render_list_text(display: Display, messages: Messages) -> str:
    if display.no_results:
        return messages.no_results
    return "\n\n".join(render_card_text(card) for card in display.cards)


def render_statistics_text(stats: Statistics) -> str:
    return (
        f"Total: {stats.total} | This month: {stats.recent} | "
        f"Journals: {stats.unique_journals} | Avg. year: {stats.avg_year}"
    )


def render_detail_text(detail: CitationDetail, messages: Messages) -> str:
    labels = messages.detail_labels
    lines = [detail.title, "=" * min(len(detail.title), 78)]
    for f in detail.fields:
        value = f.value
        if f.link and f.link != f.value:
            value = f"{f.value} <{f.link}>"
        lines.append(f"{f.label}: {value}")
    if detail.abstract:
        lines.append("")
        lines.append(f"{labels.get('abstract', 'abstract')}:")
        lines.extend(textwrap.wrap(detail.abstract, width=78))
    lines.append("")
    lines.append(f"{labels.get('created_at', 'created_at')}: {detail.created}")
    lines.append(f"{labels.get('updated_at', 'updated_at')}: {detail.updated}")
    return "\n".join(lines)
