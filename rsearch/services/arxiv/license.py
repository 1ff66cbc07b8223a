"""License metadata checks for arXiv entries."""

from dataclasses import dataclass, field
from typing import Iterable, List

from rsearch.schemas.arxiv.paper import Entry


@dataclass
class LicenseFilterResult:
    """Entries split by whether they carry license metadata."""

    allowed: List[Entry] = field(default_factory=list)
    missing_ids: List[str] = field(default_factory=list)


def has_license_metadata(entry: Entry) -> bool:
    """True when the entry has a license URL or a license string."""
    return bool(entry.license_url or entry.license)


def filter_by_license(entries: Iterable[Entry]) -> LicenseFilterResult:
    result = LicenseFilterResult()
    for entry in entries:
        if has_license_metadata(entry):
            result.allowed.append(entry)
        else:
            result.missing_ids.append(entry.id)
    return result
