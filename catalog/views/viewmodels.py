"""Pure citation -> view-model transforms: cards, detail panel, statistics."""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from catalog.api.models import Citation
from catalog.core.config import Messages

DOI_RESOLVER = "https://doi.org/"


# ── View Models ──────────────────────────────────────────────────────


class CitationCard(BaseModel):
    """Everything one card in the list shows."""

    id: Optional[str] = None
    title: str
    highlighted_title: Optional[str] = None
    authors: str
    journal_line: str
    meta_line: Optional[str] = None
    abstract: Optional[str] = None
    keywords: list[str] = Field(default_factory=list)
    actions: tuple[str, ...] = ("edit", "delete")


class DetailField(BaseModel):
    """One labelled row of the detail panel, optionally a link."""

    key: str
    label: str
    value: str
    link: Optional[str] = None


class CitationDetail(BaseModel):
    """Read-only expanded view of a single citation."""

    id: Optional[str] = None
    title: str
    fields: list[DetailField]
    abstract: Optional[str] = None
    created: str
    updated: str

    def field(self, key: str) -> Optional[DetailField]:
        return next((f for f in self.fields if f.key == key), None)


class Statistics(BaseModel):
    """Summary counters for the displayed snapshot."""

    total: int = 0
    recent: int = 0
    unique_journals: int = 0
    avg_year: int = 0


# ── Cards ────────────────────────────────────────────────────────────


def keyword_badges(keywords: str) -> list[str]:
    """Split a comma-separated keyword string into trimmed, non-empty tags."""
    if not keywords:
        return []
    return [k.strip() for k in keywords.split(",") if k.strip()]


def journal_line(citation: Citation, messages: Messages) -> str:
    line = citation.journal or messages.journal_missing
    if citation.year:
        line += f" ({citation.year})"
    return line


def meta_line(citation: Citation, messages: Messages) -> Optional[str]:
    """Volume/issue/pages joined with commas, or None if all are empty."""
    parts = []
    if citation.volume:
        parts.append(messages.volume_label.format(value=citation.volume))
    if citation.issue:
        parts.append(messages.issue_label.format(value=citation.issue))
    if citation.pages:
        parts.append(messages.pages_label.format(value=citation.pages))
    return ", ".join(parts) if parts else None


def build_card(
    citation: Citation,
    messages: Messages,
    query: str = "",
    markers: tuple[str, str] = ("<mark>", "</mark>"),
) -> CitationCard:
    highlighted = None
    if query:
        highlighted = highlight_search_terms(citation.title, query, markers)

    return CitationCard(
        id=citation.id,
        title=citation.title,
        highlighted_title=highlighted,
        authors=citation.authors or messages.authors_missing,
        journal_line=journal_line(citation, messages),
        meta_line=meta_line(citation, messages),
        abstract=citation.abstract or None,
        keywords=keyword_badges(citation.keywords),
    )


def highlight_search_terms(
    text: str,
    term: str,
    markers: tuple[str, str] = ("<mark>", "</mark>"),
) -> str:
    """Wrap every case-insensitive occurrence of ``term`` in markers.

    The term is matched literally, never as a pattern.
    """
    if not term:
        return text
    open_mark, close_mark = markers
    pattern = re.compile(re.escape(term), re.IGNORECASE)
    return pattern.sub(lambda m: f"{open_mark}{m.group(0)}{close_mark}", text)


# ── Detail Panel ─────────────────────────────────────────────────────


def build_detail(
    citation: Citation,
    messages: Messages,
    timestamp_format: str = "%d.%m.%Y, %H:%M:%S",
) -> CitationDetail:
    labels = messages.detail_labels

    def row(key: str, value: str, link: Optional[str] = None) -> DetailField:
        return DetailField(key=key, label=labels.get(key, key), value=value, link=link)

    # Always-present rows fall back to a placeholder.
    fields = [
        row("authors", citation.authors or messages.not_specified),
        row("journal", citation.journal or messages.not_specified),
        row("year", str(citation.year) if citation.year else messages.not_specified),
    ]
    for key in ("volume", "issue", "pages"):
        value = getattr(citation, key)
        if value:
            fields.append(row(key, value))
    if citation.doi:
        fields.append(row("doi", citation.doi, link=f"{DOI_RESOLVER}{citation.doi}"))
    if citation.url:
        fields.append(row("url", citation.url, link=citation.url))
    if citation.keywords:
        fields.append(row("keywords", citation.keywords))

    return CitationDetail(
        id=citation.id,
        title=citation.title,
        fields=fields,
        abstract=citation.abstract or None,
        created=format_timestamp(citation.created_at, timestamp_format),
        updated=format_timestamp(citation.updated_at, timestamp_format),
    )


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp into an aware datetime, or None."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    # Naive values are taken as local time.
    return parsed.astimezone()


def format_timestamp(value: Optional[str], fmt: str) -> str:
    """Render a backend timestamp in local time; unparseable text is kept as-is."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return value or ""
    return parsed.astimezone().strftime(fmt)


# ── Statistics ───────────────────────────────────────────────────────


def compute_statistics(
    citations: list[Citation], now: datetime | None = None
) -> Statistics:
    """Derive the dashboard counters from the displayed citations.

    ``recent`` counts records created since the start of the current local
    calendar month. ``avg_year`` is the half-up rounded mean of positive
    years, or 0 when there are none.
    """
    now = (now or datetime.now()).astimezone()
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    recent = 0
    for c in citations:
        created = parse_timestamp(c.created_at)
        if created is not None and created >= month_start:
            recent += 1

    journals = {c.journal for c in citations if c.journal}

    years = [c.year for c in citations if c.year > 0]
    avg_year = 0
    if years:
        # Integer half-up rounding of sum / n.
        avg_year = (2 * sum(years) + len(years)) // (2 * len(years))

    return Statistics(
        total=len(citations),
        recent=recent,
        unique_journals=len(journals),
        avg_year=avg_year,
    )
