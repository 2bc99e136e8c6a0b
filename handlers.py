"""
Request handlers. Each maps one HTTP request onto a repository operation and
returns the repository result; gates are attached in routes.py.
"""
import logging
from typing import Optional

from fastapi import Depends, Query
from fastapi.responses import PlainTextResponse

from auth import Identity, authenticate, get_app_settings, issue_token
from config import Settings
from database import serialize, serialize_result
from errors import Forbidden, InvalidArgument, NotFound
from moderation import ReportModerator
from payments import PaymentBridge
from repositories import (
    AnnouncementRepository,
    CommentRepository,
    PostRepository,
    ReportRepository,
    TagRepository,
    UserRepository,
    get_announcements,
    get_comments,
    get_posts,
    get_reports,
    get_tags,
    get_users,
)
from schemas import (
    Announcement,
    Comment,
    PaymentRequest,
    PostCreate,
    ReportCreate,
    Tag,
    TokenRequest,
    UserCreate,
    UserPatch,
)

logger = logging.getLogger(__name__)


def get_payment_bridge(settings: Settings = Depends(get_app_settings)) -> PaymentBridge:
    return PaymentBridge(settings)


def get_moderator(
    reports: ReportRepository = Depends(get_reports),
    comments: CommentRepository = Depends(get_comments),
    posts: PostRepository = Depends(get_posts),
) -> ReportModerator:
    return ReportModerator(reports, comments, posts)


def root():
    return PlainTextResponse("Server is running")


# ---------------------- Posts ----------------------

def list_posts(
    email: Optional[str] = None,
    page: Optional[int] = Query(None, ge=1),
    size: Optional[int] = Query(None, ge=1),
    posts: PostRepository = Depends(get_posts),
):
    query = {"author.email": email} if email else {}
    return [serialize(p) for p in posts.find_many(query, page=page, size=size)]


def count_posts(email: Optional[str] = None, posts: PostRepository = Depends(get_posts)):
    query = {"author.email": email} if email else {}
    return {"count": posts.count(query)}


def create_post(body: PostCreate, posts: PostRepository = Depends(get_posts)):
    result = posts.insert(body.to_document().model_dump())
    return serialize_result(result)


def get_post(id: str, posts: PostRepository = Depends(get_posts)):
    post = posts.find_one(id)
    if post is None:
        raise NotFound("Post not found")
    return serialize(post)


def update_post_counter(
    id: str,
    comment: Optional[str] = None,
    upvote: Optional[str] = None,
    downvote: Optional[str] = None,
    posts: PostRepository = Depends(get_posts),
):
    # flags are presence-only: ?upvote, ?upvote=true
    flags = {
        "comments_count": comment,
        "upvote_count": upvote,
        "downvote_count": downvote,
    }
    chosen = [field for field, value in flags.items() if value is not None]
    if len(chosen) != 1:
        raise InvalidArgument("Specify exactly one of comment, upvote or downvote")
    result = posts.increment(id, chosen[0], 1)
    if result.matched_count == 0:
        raise NotFound("Post not found")
    return serialize_result(result)


def delete_post(id: str, posts: PostRepository = Depends(get_posts)):
    result = posts.delete_one(id)
    if result.deleted_count == 0:
        raise NotFound("Post not found")
    return serialize_result(result)


def sorted_posts(
    sort: str = "newest",
    page: Optional[int] = Query(None, ge=1),
    size: Optional[int] = Query(None, ge=1),
    posts: PostRepository = Depends(get_posts),
):
    return [serialize(p) for p in posts.ranked(sort, page=page, size=size)]


# ---------------------- Comments ----------------------

def list_comments(comments: CommentRepository = Depends(get_comments)):
    return [serialize(c) for c in comments.find_many()]


def create_comment(body: Comment, comments: CommentRepository = Depends(get_comments)):
    return serialize_result(comments.insert(body.model_dump()))


def post_comments(
    postId: str,
    page: Optional[int] = Query(None, ge=1),
    size: Optional[int] = Query(None, ge=1),
    comments: CommentRepository = Depends(get_comments),
):
    return [serialize(c) for c in comments.for_post(postId, page=page, size=size)]


# ---------------------- Reports ----------------------

def list_reports(
    page: Optional[int] = Query(None, ge=1),
    size: Optional[int] = Query(None, ge=1),
    reports: ReportRepository = Depends(get_reports),
):
    return [serialize(r) for r in reports.find_many(page=page, size=size)]


def create_report(body: ReportCreate, reports: ReportRepository = Depends(get_reports)):
    return serialize_result(reports.insert(body.to_document().model_dump()))


def update_report(
    id: str,
    status: str,
    commentId: Optional[str] = None,
    postId: Optional[str] = None,
    moderator: ReportModerator = Depends(get_moderator),
):
    if status == "resolve":
        return moderator.resolve(id, comment_id=commentId, post_id=postId)
    if status == "ignore":
        return moderator.ignore(id)
    raise InvalidArgument("status must be 'resolve' or 'ignore'")


# ---------------------- Users ----------------------

def list_users(
    page: Optional[int] = Query(None, ge=1),
    size: Optional[int] = Query(None, ge=1),
    users: UserRepository = Depends(get_users),
):
    return [serialize(u) for u in users.find_many(page=page, size=size)]


def create_user(body: UserCreate, users: UserRepository = Depends(get_users)):
    result = users.upsert(body.to_document())
    if result.upserted_id is None:
        return {"message": "user already exists", "insertedId": None}
    logger.info("Registered user %s", body.email)
    return {"acknowledged": result.acknowledged, "insertedId": str(result.upserted_id)}


def get_user(email: str, users: UserRepository = Depends(get_users)):
    user = users.find_one(email)
    if user is None:
        raise NotFound("User not found")
    return serialize(user)


def update_user(
    email: str,
    body: UserPatch,
    identity: Identity = Depends(authenticate),
    users: UserRepository = Depends(get_users),
):
    caller = users.find_one(identity.email)
    is_admin = caller is not None and caller.get("user_role") == "admin"
    if body.user_role is not None and not is_admin:
        raise Forbidden("Only admins can change roles")
    if not is_admin and identity.email != email:
        raise Forbidden("Cannot change another user's membership")

    result = users.update_one(email, {"$set": body.model_dump(exclude_none=True)})
    if result.matched_count == 0:
        raise NotFound("User not found")
    logger.info("User %s updated by %s", email, identity.email)
    return serialize_result(result)


# ---------------------- Announcements ----------------------

def list_announcements(announcements: AnnouncementRepository = Depends(get_announcements)):
    return [serialize(a) for a in announcements.find_many()]


def count_announcements(announcements: AnnouncementRepository = Depends(get_announcements)):
    return {"count": announcements.count()}


def create_announcement(body: Announcement, announcements: AnnouncementRepository = Depends(get_announcements)):
    return serialize_result(announcements.insert(body.model_dump(exclude_none=True)))


# ---------------------- Tags ----------------------

def list_tags(
    search: Optional[str] = None,
    tags: TagRepository = Depends(get_tags),
    posts: PostRepository = Depends(get_posts),
):
    # with a search term this returns matching posts, not tags
    if search:
        return [serialize(p) for p in posts.search_tags(search)]
    return [serialize(t) for t in tags.find_many()]


def create_tag(body: Tag, tags: TagRepository = Depends(get_tags)):
    return serialize_result(tags.insert(body.model_dump()))


# ---------------------- Payments & credentials ----------------------

def create_payment_intent(body: PaymentRequest, bridge: PaymentBridge = Depends(get_payment_bridge)):
    return {"clientSecret": bridge.create_payment_intent(body.price)}


def create_token(body: TokenRequest, settings: Settings = Depends(get_app_settings)):
    token = issue_token(body.model_dump(), settings)
    logger.info("Issued credential for %s", body.email)
    return {"token": token}
