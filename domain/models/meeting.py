from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId

from utils.dates import date_to_iso, parse_date


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(eq=True)
class Meeting:
    """Meeting aggregate mirroring the MongoDB representation."""

    name: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    location: str = ""
    is_active: bool = True
    id: str | None = None
    created_at: datetime | None = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValueError("name is required")
        self.start_date = parse_date(self.start_date)
        self.end_date = parse_date(self.end_date)
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")

    # ----------------- Serialization helpers -----------------
    def to_mongo(self) -> dict:
        doc = {
            "name": self.name,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "location": self.location,
            "is_active": self.is_active,
            "created_at": self.created_at,
        }
        if self.id:
            doc["_id"] = ObjectId(self.id) if ObjectId.is_valid(self.id) else self.id
        return doc

    @classmethod
    def from_mongo(cls, doc: dict | None) -> Meeting | None:
        if not doc:
            return None

        _id = doc.get("_id")
        return cls(
            id=str(_id) if _id is not None else None,
            name=doc.get("name", ""),
            start_date=doc.get("start_date") or doc.get("startDate"),
            end_date=doc.get("end_date") or doc.get("endDate"),
            location=doc.get("location", ""),
            is_active=doc.get("is_active", doc.get("isActive", True)),
            created_at=doc.get("created_at") or doc.get("createdAt"),
        )

    @classmethod
    def from_payload(cls, data: dict[str, Any], *, existing: Meeting | None = None) -> Meeting:
        """Build a meeting from API input, merged over ``existing`` when given."""
        base = existing.to_dict() if existing else {}
        merged = {**base, **{k: v for k, v in data.items() if k in _PAYLOAD_KEYS}}
        return cls(
            id=existing.id if existing else None,
            name=merged.get("name", ""),
            start_date=merged.get("start_date"),
            end_date=merged.get("end_date"),
            location=(merged.get("location") or "").strip(),
            is_active=bool(merged.get("is_active", True)),
            created_at=existing.created_at if existing else _utcnow(),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "start_date": date_to_iso(self.start_date) or None,
            "end_date": date_to_iso(self.end_date) or None,
            "location": self.location,
            "is_active": self.is_active,
        }


_PAYLOAD_KEYS = ("name", "start_date", "end_date", "location", "is_active")
