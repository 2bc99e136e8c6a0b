"""
Data access over the six Thread Nexus collections.

Every repository wraps one collection. Documents are keyed by ObjectId except
users, which are keyed by email.
"""
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi import Depends
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult

from database import get_db, object_id
from errors import InvalidArgument
from schemas import User

SortSpec = Sequence[Tuple[str, int]]

COUNTER_FIELDS = ("comments_count", "upvote_count", "downvote_count")


def page_window(page: Optional[int], size: Optional[int]) -> Optional[Tuple[int, int]]:
    """Return (skip, limit) for a 1-indexed page, or None when unpaginated."""
    if page is None or size is None:
        return None
    if page < 1 or size < 1:
        raise InvalidArgument("page and size must be positive integers")
    return size * (page - 1), size


class Repository:
    collection_name: str = ""
    default_sort: SortSpec = ()

    def __init__(self, db: Database):
        self.collection: Collection = db[self.collection_name]

    def key_filter(self, key: Any) -> Dict[str, Any]:
        return {"_id": object_id(key) if isinstance(key, str) else key}

    def find_many(
        self,
        filter: Optional[Dict[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        page: Optional[int] = None,
        size: Optional[int] = None,
    ) -> List[dict]:
        cursor = self.collection.find(filter or {})
        sort = sort or self.default_sort
        if sort:
            cursor = cursor.sort(list(sort))
        window = page_window(page, size)
        if window:
            skip, limit = window
            cursor = cursor.skip(skip).limit(limit)
        return list(cursor)

    def count(self, filter: Optional[Dict[str, Any]] = None) -> int:
        return self.collection.count_documents(filter or {})

    def find_one(self, key: Any) -> Optional[dict]:
        return self.collection.find_one(self.key_filter(key))

    def insert(self, document: Dict[str, Any]) -> InsertOneResult:
        return self.collection.insert_one(dict(document))

    def update_one(self, key: Any, patch: Dict[str, Any]) -> UpdateResult:
        if set(patch) - {"$set", "$inc"} or len(patch) != 1:
            raise InvalidArgument("patch must be a single $set or $inc")
        return self.collection.update_one(self.key_filter(key), patch)

    def delete_one(self, key: Any) -> DeleteResult:
        return self.collection.delete_one(self.key_filter(key))


class PostRepository(Repository):
    collection_name = "posts"
    default_sort = (("time", DESCENDING),)

    def increment(self, post_id: str, field: str, amount: int = 1) -> UpdateResult:
        if field not in COUNTER_FIELDS:
            raise InvalidArgument(f"Unknown counter: {field}")
        return self.update_one(post_id, {"$inc": {field: amount}})

    def decrement_comments(self, post_id: str) -> UpdateResult:
        # never below zero
        return self.collection.update_one(
            {"_id": object_id(post_id), "comments_count": {"$gt": 0}},
            {"$inc": {"comments_count": -1}},
        )

    def ranked(self, sort: str, page: Optional[int] = None, size: Optional[int] = None) -> List[dict]:
        if sort == "newest":
            return self.find_many(sort=(("time", DESCENDING),), page=page, size=size)
        if sort != "popularity":
            raise InvalidArgument("sort must be 'popularity' or 'newest'")
        pipeline: List[Dict[str, Any]] = [
            {"$addFields": {"voteDifference": {"$subtract": ["$upvote_count", "$downvote_count"]}}},
            {"$sort": {"voteDifference": -1, "time": -1}},
        ]
        window = page_window(page, size)
        if window:
            skip, limit = window
            pipeline += [{"$skip": skip}, {"$limit": limit}]
        return list(self.collection.aggregate(pipeline))

    def search_tags(self, term: str) -> List[dict]:
        pattern = {"$regex": re.escape(term), "$options": "i"}
        return self.find_many({"tags": pattern})


class CommentRepository(Repository):
    collection_name = "comments"
    default_sort = (("time", DESCENDING),)

    def for_post(self, post_id: str, page: Optional[int] = None, size: Optional[int] = None) -> List[dict]:
        object_id(post_id)
        return self.find_many({"postId": post_id}, page=page, size=size)


class ReportRepository(Repository):
    collection_name = "reports"
    default_sort = (("time", DESCENDING),)

    def transition(self, report_id: str, from_status: str, to_status: str) -> Optional[dict]:
        """Compare-and-set the report status; returns the prior document or None."""
        return self.collection.find_one_and_update(
            {"_id": object_id(report_id), "status": from_status},
            {"$set": {"status": to_status}},
            return_document=ReturnDocument.BEFORE,
        )


class UserRepository(Repository):
    collection_name = "users"
    default_sort = (("email", ASCENDING),)

    def key_filter(self, key: Any) -> Dict[str, Any]:
        return {"email": key}

    def upsert(self, user: User) -> UpdateResult:
        """Insert the user unless the email is already registered."""
        data = user.model_dump(exclude_none=True)
        return self.collection.update_one(
            {"email": data["email"]},
            {"$setOnInsert": data},
            upsert=True,
        )


class TagRepository(Repository):
    collection_name = "tags"
    default_sort = (("label", ASCENDING),)


class AnnouncementRepository(Repository):
    collection_name = "announcements"
    default_sort = (("date", DESCENDING),)


# ---------------------- Dependencies ----------------------

def get_posts(db: Database = Depends(get_db)) -> PostRepository:
    return PostRepository(db)


def get_comments(db: Database = Depends(get_db)) -> CommentRepository:
    return CommentRepository(db)


def get_reports(db: Database = Depends(get_db)) -> ReportRepository:
    return ReportRepository(db)


def get_users(db: Database = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_tags(db: Database = Depends(get_db)) -> TagRepository:
    return TagRepository(db)


def get_announcements(db: Database = Depends(get_db)) -> AnnouncementRepository:
    return AnnouncementRepository(db)
