# tests/conftest.py
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterator

import mongomock
import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("ACCESS_TOKEN_SECRET", "thread-nexus-test-secret-0123456789abcdef")

from auth import issue_token
from config import Settings
from main import create_app

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        ACCESS_TOKEN_SECRET="thread-nexus-test-secret-0123456789abcdef",
        STRIPE_SECRET_KEY="sk_test_123",
        DATABASE_NAME="threadNexusTest",
        _env_file=None,
    )


@pytest.fixture()
def mongo() -> mongomock.MongoClient:
    return mongomock.MongoClient(tz_aware=True)


@pytest.fixture()
def db(mongo, settings):
    return mongo[settings.database_name]


@pytest.fixture()
def app(settings, mongo):
    return create_app(settings, client=mongo)


@pytest.fixture()
def client(app) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def auth_headers(settings) -> Callable[[str], Dict[str, str]]:
    def _headers(email: str) -> Dict[str, str]:
        return {"Authorization": issue_token({"email": email}, settings)}
    return _headers


@pytest.fixture()
def member(db, auth_headers) -> Dict[str, str]:
    db["users"].insert_one({"email": "member@example.com", "membership_status": "free", "user_role": "member"})
    return auth_headers("member@example.com")


@pytest.fixture()
def admin(db, auth_headers) -> Dict[str, str]:
    db["users"].insert_one({"email": "admin@example.com", "membership_status": "free", "user_role": "admin"})
    return auth_headers("admin@example.com")


@pytest.fixture()
def make_post(db) -> Callable[..., str]:
    counter = {"n": 0}

    def _make(**fields: Any) -> str:
        counter["n"] += 1
        doc = {
            "title": f"Post {counter['n']}",
            "description": "body",
            "author": {"name": "Ann", "email": "ann@example.com"},
            "tags": [],
            "comments_count": 0,
            "upvote_count": 0,
            "downvote_count": 0,
            "time": BASE_TIME + timedelta(minutes=counter["n"]),
        }
        doc.update(fields)
        return str(db["posts"].insert_one(doc).inserted_id)
    return _make


@pytest.fixture()
def make_comment(db) -> Callable[..., str]:
    def _make(post_id: str, body: str = "nice post", **fields: Any) -> str:
        doc = {
            "postId": post_id,
            "author": {"email": "bob@example.com"},
            "body": body,
            "time": BASE_TIME,
        }
        doc.update(fields)
        return str(db["comments"].insert_one(doc).inserted_id)
    return _make
