"""
Report lifecycle: pending -> ignored | deleted.

Resolving a report touches three collections (report, comment, post counter).
The report is claimed first with a compare-and-set on its status, so only one
caller ever performs the comment delete and counter decrement. If a later step
fails, the completed steps are undone in reverse order.
"""
import logging
from typing import Any, Dict, Optional

from pymongo.errors import PyMongoError

from database import serialize_result
from errors import Conflict, DatabaseUnavailable, InvalidArgument, NotFound
from repositories import CommentRepository, PostRepository, ReportRepository

logger = logging.getLogger(__name__)

PENDING = "pending"
IGNORED = "ignored"
DELETED = "deleted"


def _status_ack() -> Dict[str, Any]:
    return {"acknowledged": True, "matchedCount": 1, "modifiedCount": 1, "upsertedId": None}


class ReportModerator:
    def __init__(self, reports: ReportRepository, comments: CommentRepository, posts: PostRepository):
        self.reports = reports
        self.comments = comments
        self.posts = posts

    def _claim(self, report_id: str, to_status: str) -> dict:
        prior = self.reports.transition(report_id, PENDING, to_status)
        if prior is not None:
            return prior
        current = self.reports.find_one(report_id)
        if current is None:
            raise NotFound("Report not found")
        raise Conflict(f"Report is already {current.get('status')}")

    def ignore(self, report_id: str) -> Dict[str, Any]:
        self._claim(report_id, IGNORED)
        logger.info("Report %s ignored", report_id)
        return _status_ack()

    def resolve(
        self,
        report_id: str,
        comment_id: Optional[str] = None,
        post_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        report = self.reports.find_one(report_id)
        if report is None:
            raise NotFound("Report not found")
        if comment_id is not None and comment_id != report.get("commentId"):
            raise InvalidArgument("commentId does not match the report")
        if post_id is not None and post_id != report.get("postId"):
            raise InvalidArgument("postId does not match the report")
        comment_id = report["commentId"]
        post_id = report["postId"]

        self._claim(report_id, DELETED)

        snapshot = None
        try:
            snapshot = self.comments.find_one(comment_id)
            deleted = self.comments.delete_one(comment_id)
            if deleted.deleted_count:
                updated = self.posts.decrement_comments(post_id)
            else:
                # the comment was already gone, so its count was already adjusted
                updated = None
        except PyMongoError as e:
            logger.error("Resolving report %s failed, compensating: %s", report_id, e)
            self._compensate(report_id, snapshot)
            raise DatabaseUnavailable("Report resolution failed")

        logger.info("Report %s resolved: comment %s removed from post %s", report_id, comment_id, post_id)
        return {
            "report": _status_ack(),
            "comment": serialize_result(deleted),
            "post": serialize_result(updated) if updated is not None else None,
        }

    def _compensate(self, report_id: str, snapshot: Optional[dict]) -> None:
        try:
            if snapshot is not None and self.comments.find_one(snapshot["_id"]) is None:
                self.comments.insert(snapshot)
                logger.warning("Restored comment %s", snapshot["_id"])
            self.reports.transition(report_id, DELETED, PENDING)
            logger.warning("Report %s returned to pending", report_id)
        except PyMongoError:
            logger.exception("Compensation for report %s failed; manual repair needed", report_id)
