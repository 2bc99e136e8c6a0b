"""
Routing table: (method, path) -> handler, with the gates that run before it.
"""
from typing import Callable, List, NamedTuple, Sequence

from fastapi import Depends, FastAPI

import handlers
from auth import authenticate, require_admin


class Route(NamedTuple):
    method: str
    path: str
    handler: Callable
    gates: Sequence[Callable] = ()


AUTH = (authenticate,)
ADMIN = (authenticate, require_admin)

ROUTES: List[Route] = [
    Route("GET", "/", handlers.root),
    # posts
    Route("GET", "/posts", handlers.list_posts),
    Route("GET", "/posts-count", handlers.count_posts),
    Route("POST", "/posts", handlers.create_post, AUTH),
    Route("GET", "/post/{id}", handlers.get_post),
    Route("PATCH", "/post/{id}", handlers.update_post_counter, AUTH),
    Route("DELETE", "/post/{id}", handlers.delete_post, AUTH),
    Route("GET", "/sort", handlers.sorted_posts),
    # comments
    Route("GET", "/comments", handlers.list_comments),
    Route("POST", "/comments", handlers.create_comment, AUTH),
    Route("GET", "/comments/{postId}", handlers.post_comments),
    # reports
    Route("GET", "/reports", handlers.list_reports, ADMIN),
    Route("POST", "/reports", handlers.create_report, AUTH),
    Route("PATCH", "/report/{id}", handlers.update_report, ADMIN),
    # users
    Route("GET", "/users", handlers.list_users, ADMIN),
    Route("POST", "/users", handlers.create_user),
    Route("GET", "/user/{email}", handlers.get_user),
    Route("PATCH", "/user/{email}", handlers.update_user, AUTH),
    # announcements
    Route("GET", "/announcements", handlers.list_announcements),
    Route("GET", "/announcements-count", handlers.count_announcements),
    Route("POST", "/announcements", handlers.create_announcement, ADMIN),
    # tags
    Route("GET", "/tags", handlers.list_tags),
    Route("POST", "/tags", handlers.create_tag, ADMIN),
    # payments & credentials
    Route("POST", "/create-payment-intent", handlers.create_payment_intent, AUTH),
    Route("POST", "/jwt", handlers.create_token),
]


def register_routes(app: FastAPI, routes: Sequence[Route] = ROUTES) -> None:
    for route in routes:
        app.add_api_route(
            route.path,
            route.handler,
            methods=[route.method],
            dependencies=[Depends(gate) for gate in route.gates],
        )
