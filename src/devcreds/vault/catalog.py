# Vault - Index Catalog
#
# index.json: {"credentials": {key: {"description": ..., "updated": ...}}}
# Every mutation is read -> modify in memory -> atomic replace. Callers
# that mutate must hold the store lock.

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

from .errors import CatalogCorrupt
from .fileio import atomic_write

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexEntry:
    """Catalog metadata for one credential. Never holds the value."""

    key: str
    description: str
    updated: datetime

    def to_dict(self) -> Dict[str, str]:
        return {
            "description": self.description,
            "updated": format_timestamp(self.updated),
        }


def format_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with microseconds and a trailing Z."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(value: str) -> datetime:
    """Accept both our format and the second-resolution ``...Z`` form."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class IndexCatalog:
    """Read/merge/write of the catalog artifact."""

    FILENAME = "index.json"

    def __init__(self, credentials_dir: Path):
        self.path = Path(credentials_dir) / self.FILENAME

    def read(self) -> Dict[str, IndexEntry]:
        """Full catalog; a missing file is an empty catalog."""
        if not self.path.exists():
            return {}

        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise CatalogCorrupt(f"{self.path} is not valid JSON: {e}") from e

        if not isinstance(document, dict) or not isinstance(document.get("credentials", {}), dict):
            raise CatalogCorrupt(f"{self.path} has no 'credentials' mapping")

        entries = {}
        for key, raw in document.get("credentials", {}).items():
            try:
                entries[key] = IndexEntry(
                    key=key,
                    description=str(raw.get("description", "")),
                    updated=parse_timestamp(raw["updated"]),
                )
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                raise CatalogCorrupt(f"Malformed catalog entry for {key!r}: {e}") from e
        return entries

    def get(self, key: str) -> Optional[IndexEntry]:
        return self.read().get(key)

    def entries(self) -> List[IndexEntry]:
        """All entries ordered by key name."""
        catalog = self.read()
        return [catalog[key] for key in sorted(catalog)]

    def upsert(
        self,
        key: str,
        description: str,
        updated: Optional[datetime] = None
    ) -> IndexEntry:
        """
        Replace the entry for ``key``, leaving all others untouched.

        The new ``updated`` is always strictly later than the entry it
        replaces, even if the clock has not advanced.
        """
        catalog = self.read()
        updated = updated or datetime.now(timezone.utc)

        previous = catalog.get(key)
        if previous is not None and updated <= previous.updated:
            updated = previous.updated + timedelta(microseconds=1)

        entry = IndexEntry(key=key, description=description, updated=updated)
        catalog[key] = entry
        self._write(catalog)
        return entry

    def remove(self, key: str) -> bool:
        """Delete the entry for ``key``. Returns True if it existed."""
        catalog = self.read()
        if key not in catalog:
            return False
        del catalog[key]
        self._write(catalog)
        return True

    def _write(self, catalog: Dict[str, IndexEntry]) -> None:
        document = {
            "credentials": {key: catalog[key].to_dict() for key in sorted(catalog)}
        }
        atomic_write(self.path, json.dumps(document, indent=2) + "\n")
