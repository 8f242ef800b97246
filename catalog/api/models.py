"""Citation records exchanged with the catalog backend."""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

TEXT_FIELDS = (
    "title",
    "authors",
    "journal",
    "volume",
    "issue",
    "pages",
    "doi",
    "url",
    "keywords",
    "abstract",
)

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


# ── Citation ─────────────────────────────────────────────────────────


class Citation(BaseModel):
    """A single bibliographic record as stored by the backend."""

    id: Optional[str] = None
    title: str
    authors: str = ""
    journal: str = ""
    year: int = 0
    volume: str = ""
    issue: str = ""
    pages: str = ""
    doi: str = ""
    url: str = ""
    abstract: str = ""
    keywords: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, v):
        if v is None or v == "":
            return None
        return str(v)

    @field_validator(*TEXT_FIELDS[1:], mode="before")
    @classmethod
    def null_as_empty(cls, v):
        return "" if v is None else v

    @field_validator("year", mode="before")
    @classmethod
    def null_year(cls, v):
        return 0 if v is None else v

    def to_input(self) -> "CitationInput":
        """Drop backend-owned fields, keeping the editable payload."""
        return CitationInput.model_validate(
            self.model_dump(exclude={"id", "created_at", "updated_at"})
        )


# ── Request Payload ──────────────────────────────────────────────────


class CitationInput(BaseModel):
    """Flat create/update body: every Citation field except id and timestamps."""

    title: str
    authors: str = ""
    journal: str = ""
    year: int = Field(default=0, ge=0)
    volume: str = ""
    issue: str = ""
    pages: str = ""
    doi: str = ""
    url: str = ""
    keywords: str = ""
    abstract: str = ""

    @classmethod
    def from_form(cls, form: dict[str, str]) -> "CitationInput":
        """Build a payload from raw form values.

        Text fields are trimmed; ``year`` goes through :func:`coerce_year`.
        The title is not validated here so that callers can report an empty
        title themselves.
        """
        data = {name: (form.get(name) or "").strip() for name in TEXT_FIELDS}
        data["year"] = coerce_year(form.get("year"))
        return cls.model_validate(data)

    def has_title(self) -> bool:
        return bool(self.title.strip())


# ── Helpers ──────────────────────────────────────────────────────────


def coerce_year(raw) -> int:
    """Parse a year the way a form input would, falling back to 0.

    Leading digits win (``"2020abc"`` -> 2020); anything unparseable or
    negative becomes 0.
    """
    if raw is None:
        return 0
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return max(raw, 0)
    match = _LEADING_INT_RE.match(str(raw))
    if not match:
        return 0
    return max(int(match.group(1)), 0)
