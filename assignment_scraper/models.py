# assignment_scraper/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

# mimeType recorded when a resource is kept as a page link rather than a file
LINK_MIME_TYPE = "text/html"


@dataclass(frozen=True)
class AssignmentLink:
    url: str
    text: str = ""


@dataclass(frozen=True)
class ResourceRecord:
    name: str
    href: str
    mime_type: str = LINK_MIME_TYPE

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "href": self.href, "mimeType": self.mime_type}


@dataclass(frozen=True)
class AssignmentRecord:
    url: str
    title: str = ""
    course: str = ""
    due: str = ""
    description: str = ""
    resources: Tuple[ResourceRecord, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "course": self.course,
            "due": self.due,
            "description": self.description,
            "url": self.url,
            "resources": [r.to_dict() for r in self.resources],
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ScrapeResult:
    assignments: Tuple[AssignmentRecord, ...] = ()
    scraped_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        stamp = self.scraped_at.astimezone(timezone.utc).isoformat(timespec="milliseconds")
        return {
            "scrapedAt": stamp.replace("+00:00", "Z"),
            "assignments": [a.to_dict() for a in self.assignments],
        }
