from __future__ import annotations

import json
import threading
import uuid
from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from autovote.models import check_url

DEFAULT_SITES_FILE = Path.home() / ".autovote" / "sites.json"


class SiteNotFound(KeyError):
    def __str__(self) -> str:
        return f"Site configuration not found: {self.args[0]!r}"


class SiteFileError(ValueError):
    """The sites file exists but does not hold valid site configurations."""


class Site(BaseModel):
    """A saved site: where to log in, where to vote, how many rounds by default."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    login_url: str
    vote_url: str
    default_iterations: int = Field(default=1, ge=1)

    @field_validator("login_url", "vote_url")
    @classmethod
    def _absolute_http_url(cls, value: str, info: ValidationInfo) -> str:
        # Same rule as RunConfig, so a saved site can never be rejected at run time.
        check_url(info.field_name, value)
        return value


class SiteStore:
    """
    Named site configurations kept in one JSON file.

    The file is re-read on every call so several processes can share it.
    """

    def __init__(self, path: Path = DEFAULT_SITES_FILE):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> List[Site]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "[]")
            if not isinstance(raw, list):
                raise SiteFileError(f"{self.path} must hold a JSON list of sites")
            return [Site.model_validate(item) for item in raw]
        except (json.JSONDecodeError, ValidationError) as e:
            raise SiteFileError(f"{self.path} is not a valid sites file: {e}") from e

    def _save(self, sites: List[Site]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([s.model_dump() for s in sites], indent=2, ensure_ascii=False)
        self.path.write_text(payload + "\n", encoding="utf-8")

    def list(self) -> List[Site]:
        with self._lock:
            return self._load()

    def create(self, name: str, login_url: str, vote_url: str, default_iterations: int = 1) -> Site:
        """Validate and append a new site. Raises pydantic's ValidationError on bad input."""
        site = Site(
            id=uuid.uuid4().hex[:8],
            name=name,
            login_url=login_url,
            vote_url=vote_url,
            default_iterations=default_iterations,
        )
        with self._lock:
            sites = self._load()
            sites.append(site)
            self._save(sites)
        return site

    def delete(self, site_id: str) -> None:
        with self._lock:
            sites = self._load()
            kept = [s for s in sites if s.id != site_id]
            if len(kept) == len(sites):
                raise SiteNotFound(site_id)
            self._save(kept)

    def resolve(self, key: str) -> Site:
        """Find a site by id, or by name when no id matches."""
        sites = self.list()
        for site in sites:
            if site.id == key:
                return site
        for site in sites:
            if site.name == key:
                return site
        raise SiteNotFound(key)
