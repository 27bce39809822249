from __future__ import annotations

from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, ReturnDocument
from pymongo.collection import Collection

from config.database import mongodb
from domain.models.meeting import Meeting


def _object_id(value: str) -> ObjectId | str:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return value


class MeetingRepository:
    """Repository providing CRUD operations for meetings."""

    def __init__(self) -> None:
        self.collection: Collection = mongodb.collection("meetings")

    def ensure_indexes(self) -> None:
        """Meeting names are the natural key of the CSV import."""
        self.collection.create_index([("name", ASCENDING)])

    def save(self, meeting: Meeting) -> str:
        """Insert a new meeting document."""
        doc = meeting.to_mongo()
        doc.pop("_id", None)
        result = self.collection.insert_one(doc)
        meeting.id = str(result.inserted_id)
        return meeting.id

    def find_all(self) -> List[Meeting]:
        cursor = self.collection.find().sort("start_date", ASCENDING)
        return [Meeting.from_mongo(doc) for doc in cursor]

    def find_active(self) -> List[Meeting]:
        cursor = self.collection.find({"is_active": True}).sort("start_date", ASCENDING)
        return [Meeting.from_mongo(doc) for doc in cursor]

    def find_by_id(self, meeting_id: str) -> Optional[Meeting]:
        doc = self.collection.find_one({"_id": _object_id(meeting_id)})
        return Meeting.from_mongo(doc)

    def find_by_name(self, name: str) -> Optional[Meeting]:
        """Exact, case-sensitive name lookup."""
        doc = self.collection.find_one({"name": name})
        return Meeting.from_mongo(doc)

    def update(self, meeting_id: str, data: Dict[str, Any]) -> Optional[Meeting]:
        data = {k: v for k, v in data.items() if k != "_id"}
        doc = self.collection.find_one_and_update(
            {"_id": _object_id(meeting_id)},
            {"$set": data},
            return_document=ReturnDocument.AFTER,
        )
        return Meeting.from_mongo(doc)

    def delete(self, meeting_id: str) -> int:
        result = self.collection.delete_one({"_id": _object_id(meeting_id)})
        return result.deleted_count
