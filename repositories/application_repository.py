from __future__ import annotations

from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection

from config.database import mongodb
from domain.models.application import Application


def _object_id(value: str) -> ObjectId | str:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return value


class ApplicationRepository:
    """Repository for visa letter applications."""

    def __init__(self) -> None:
        self.collection: Collection = mongodb.collection("applications")

    def ensure_indexes(self) -> None:
        """Create indexes used by application queries."""
        self.collection.create_index([("passport_number", ASCENDING), ("meeting_id", ASCENDING)])
        self.collection.create_index([("meeting_id", ASCENDING), ("created_at", DESCENDING)])
        self.collection.create_index([("user_id", ASCENDING)])

    def create(self, application: Application) -> Application:
        """Insert a new application and return it with its generated id."""
        doc = application.to_mongo()
        doc.pop("_id", None)
        result = self.collection.insert_one(doc)
        return application.model_copy(update={"id": str(result.inserted_id)})

    def replace(self, application: Application) -> Application:
        """Overwrite a stored application (identity taken from ``application.id``)."""
        doc = application.to_mongo()
        doc.pop("_id", None)
        self.collection.replace_one({"_id": _object_id(application.id)}, doc)
        return application

    def update(self, application_id: str, data: Dict[str, Any]) -> Optional[Application]:
        """Apply a partial ``$set`` and return the updated application."""
        data = {k: v for k, v in data.items() if k not in ("_id", "id", "created_at")}
        doc = self.collection.find_one_and_update(
            {"_id": _object_id(application_id)},
            {"$set": data},
            return_document=ReturnDocument.AFTER,
        )
        return Application.from_mongo(doc)

    def find_by_id(self, application_id: str) -> Optional[Application]:
        doc = self.collection.find_one({"_id": _object_id(application_id)})
        return Application.from_mongo(doc)

    def find_by_passport_and_meeting(
        self, passport_number: str, meeting_id: str
    ) -> Optional[Application]:
        """Lookup by the import reconciliation key."""
        doc = self.collection.find_one(
            {"passport_number": passport_number, "meeting_id": meeting_id}
        )
        return Application.from_mongo(doc)

    def find_by_meeting(self, meeting_id: str) -> List[Application]:
        """All applications for a meeting, newest first."""
        cursor = self.collection.find({"meeting_id": meeting_id}).sort("created_at", DESCENDING)
        return [Application.from_mongo(doc) for doc in cursor]

    def find_by_user(self, user_id: str) -> List[Application]:
        cursor = self.collection.find({"user_id": user_id}).sort("created_at", DESCENDING)
        return [Application.from_mongo(doc) for doc in cursor]

    def find_all(self) -> List[Application]:
        cursor = self.collection.find().sort("created_at", DESCENDING)
        return [Application.from_mongo(doc) for doc in cursor]

    def delete(self, application_id: str) -> int:
        result = self.collection.delete_one({"_id": _object_id(application_id)})
        return result.deleted_count
