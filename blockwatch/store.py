from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


EMPTY_LIST_TEXT = "📭 The domain list is empty."

ADDED = "added"
REMOVED = "removed"
DUPLICATE = "duplicate"
NOT_FOUND = "not_found"
USAGE = "usage"


class StoreUnavailable(RuntimeError):
    """The backing medium of the domain list could not be read or written."""


@dataclass(frozen=True)
class StoreOutcome:
    kind: str
    domain: str
    command: str

    @property
    def changed(self) -> bool:
        return self.kind in {ADDED, REMOVED}

    @property
    def message(self) -> str:
        if self.kind == ADDED:
            return f"✅ Added {self.domain} to the list."
        if self.kind == REMOVED:
            return f"🗑 Removed {self.domain} from the list."
        if self.kind == DUPLICATE:
            return f"ℹ️ {self.domain} is already in the list."
        if self.kind == NOT_FOUND:
            return f"ℹ️ {self.domain} was not found in the list."
        return f"Usage: /{self.command} <domain>\nExample: /{self.command} example.com"


def _normalize_domain(domain: str | None) -> str | None:
    """Strip surrounding whitespace; None when the argument is not one non-empty token."""
    s = (domain or "").strip()
    if not s or any(ch.isspace() for ch in s):
        return None
    return s


class DomainStore:
    """Ordered, duplicate-free domain list guarded by one exclusive lock.

    Subclasses provide `_load` and `_save`; every public call takes the lock for
    exactly one whole-list read or one read-check-write sequence.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def _load(self) -> list[str]:
        raise NotImplementedError

    def _save(self, domains: list[str]) -> None:
        raise NotImplementedError

    def read_all(self) -> list[str]:
        with self._lock:
            return list(self._load())

    def add(self, domain: str | None) -> StoreOutcome:
        value = _normalize_domain(domain)
        if value is None:
            return StoreOutcome(kind=USAGE, domain="", command="add")

        with self._lock:
            domains = self._load()
            if value in domains:
                return StoreOutcome(kind=DUPLICATE, domain=value, command="add")
            self._save([*domains, value])

        logger.info("Domain added", domain=value, total=len(domains) + 1)
        return StoreOutcome(kind=ADDED, domain=value, command="add")

    def remove(self, domain: str | None) -> StoreOutcome:
        value = _normalize_domain(domain)
        if value is None:
            return StoreOutcome(kind=USAGE, domain="", command="remove")

        with self._lock:
            domains = self._load()
            if value not in domains:
                return StoreOutcome(kind=NOT_FOUND, domain=value, command="remove")
            remaining = list(domains)
            remaining.remove(value)
            self._save(remaining)

        logger.info("Domain removed", domain=value, total=len(remaining))
        return StoreOutcome(kind=REMOVED, domain=value, command="remove")

    def list_all(self) -> str:
        domains = self.read_all()
        if not domains:
            return EMPTY_LIST_TEXT
        return "\n".join(domains)


class FileDomainStore(DomainStore):
    """Domain list persisted as newline-joined text, rewritten in full on every change."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)

    def _load(self) -> list[str]:
        try:
            if not self.path.exists():
                return []
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StoreUnavailable(f"Cannot read {self.path}: {exc}") from exc

        seen: set[str] = set()
        domains: list[str] = []
        for line in raw.splitlines():
            s = line.strip()
            if s and s not in seen:
                seen.add(s)
                domains.append(s)
        return domains

    def _save(self, domains: list[str]) -> None:
        tmp = self.path.with_name(f"{self.path.name}.tmp")
        try:
            tmp.write_text("\n".join(domains), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as exc:
            raise StoreUnavailable(f"Cannot write {self.path}: {exc}") from exc


class MemoryDomainStore(DomainStore):
    def __init__(self, domains: list[str] | None = None) -> None:
        super().__init__()
        self._domains: list[str] = list(domains or [])

    def _load(self) -> list[str]:
        return list(self._domains)

    def _save(self, domains: list[str]) -> None:
        self._domains = list(domains)
