from __future__ import annotations

from typing import List, Optional

from bson import ObjectId
from bson.errors import InvalidId

from config.database import mongodb
from domain.models.user import Role, User


class UserRepository:
    """CRUD operations for users collection."""

    def __init__(self) -> None:
        self.collection = mongodb.collection("users")

    def ensure_indexes(self) -> None:
        self.collection.create_index("email", unique=True)

    def create(self, user: User) -> str:
        result = self.collection.insert_one(user.to_mongo())
        return str(result.inserted_id)

    def get_by_id(self, user_id: str) -> Optional[User]:
        try:
            oid = ObjectId(user_id)
        except (InvalidId, TypeError):
            return None
        doc = self.collection.find_one({"_id": oid})
        return User.from_mongo(doc)

    def get_by_email(self, email: str) -> Optional[User]:
        doc = self.collection.find_one({"email": (email or "").strip().lower()})
        return User.from_mongo(doc)

    def find_all(self) -> List[User]:
        return [User.from_mongo(doc) for doc in self.collection.find()]

    def count_admins(self) -> int:
        return self.collection.count_documents({"role": Role.admin.value})

    def update(self, user_id: str, data: dict) -> int:
        data = {k: v for k, v in data.items() if k != "_id"}
        result = self.collection.update_one({"_id": ObjectId(user_id)}, {"$set": data})
        return result.modified_count

    def delete(self, user_id: str) -> int:
        result = self.collection.delete_one({"_id": ObjectId(user_id)})
        return result.deleted_count
