"""Client configuration: YAML loader, Pydantic models, env overrides."""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

BASE_URL_ENV = "CATALOG_BASE_URL"


# ── User-Facing Messages ─────────────────────────────────────────────


class Messages(BaseModel):
    """Every text shown to the user; override in YAML to localize."""

    app_name: str = "Citation Catalog"
    load_failed: str = "Failed to load citations"
    search_failed: str = "Failed to search citations"
    details_failed: str = "Failed to load citation details"
    save_failed: str = "Failed to save citation"
    delete_failed: str = "Failed to delete citation"
    export_failed: str = "Failed to export citations"
    title_required: str = "Title is required"
    created: str = "Citation added"
    updated: str = "Citation updated"
    deleted: str = "Citation deleted"
    exported: str = "Citations exported in {format} format"
    confirm_delete: str = "Are you sure you want to delete this citation?"
    no_results: str = "No citations found"
    authors_missing: str = "Authors not specified"
    journal_missing: str = "Journal not specified"
    not_specified: str = "Not specified"
    add_title: str = "Add new citation"
    edit_title: str = "Edit citation"
    volume_label: str = "Vol. {value}"
    issue_label: str = "No. {value}"
    pages_label: str = "pp. {value}"
    detail_labels: dict[str, str] = Field(
        default_factory=lambda: {
            "authors": "Authors",
            "journal": "Journal",
            "year": "Year",
            "volume": "Volume",
            "issue": "Issue",
            "pages": "Pages",
            "doi": "DOI",
            "url": "URL",
            "keywords": "Keywords",
            "abstract": "Abstract",
            "created_at": "Created",
            "updated_at": "Updated",
        }
    )


# ── Client Config (top-level) ────────────────────────────────────────


class CatalogConfig(BaseModel):
    """Top-level settings for talking to and displaying the catalog."""

    base_url: str = "http://localhost:8080"
    timeout: float = Field(default=10.0, gt=0)
    notification_delay: float = Field(
        default=3.0, gt=0, description="Seconds before a notification expires"
    )
    timestamp_format: str = "%d.%m.%Y, %H:%M:%S"
    export_dir: Path = Path(".")
    highlight: list[str] = Field(
        default_factory=lambda: ["<mark>", "</mark>"],
        min_length=2,
        max_length=2,
        description="[open, close] markers around search matches",
    )
    messages: Messages = Field(default_factory=Messages)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {v!r}")
        return v


# ── Loading ──────────────────────────────────────────────────────────


def load_config(path: str | Path | None = None) -> CatalogConfig:
    """Load config from a YAML file (or defaults) and apply env overrides."""
    raw: dict = {}
    if path is not None:
        path = Path(path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        logger.debug("Loaded config from %s", path)

    env_url: Optional[str] = os.environ.get(BASE_URL_ENV)
    if env_url:
        raw["base_url"] = env_url
        logger.debug("base_url overridden by %s", BASE_URL_ENV)

    return CatalogConfig.model_validate(raw)
