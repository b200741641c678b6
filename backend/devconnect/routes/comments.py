"""
DevConnect Backend: Comment Route Handlers
============================================

What:  /api/comments: project comment threads, replies and likes.
Who:   The project detail page (comment list, reply box, like button).

A valid bearer token on the public listings fills `is_liked` for the
caller; without one every comment reports is_liked=false.
"""

import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from devconnect.dependencies import (
    AuthenticatedUser,
    get_comment_service,
    optional_user,
    require_user,
)
from devconnect.pagination import resolve_window
from devconnect.responses import json_response, paginated_envelope, success_envelope
from devconnect.services.comment_service import DEFAULT_REPLIES_LIMIT, CommentService
from devconnect.validation import validate_body, validate_params, validate_query

router = APIRouter(prefix="/api/comments", tags=["Comments"])


@router.get("/project/{projectId}", summary="List a project's top-level comments")
async def list_project_comments(
    params: Dict[str, Any] = Depends(validate_params("ProjectIdParam")),
    query: Dict[str, Any] = Depends(validate_query("CommentListQuery")),
    viewer: Optional[AuthenticatedUser] = Depends(optional_user),
    service: CommentService = Depends(get_comment_service),
):
    window = resolve_window(page=query.get("page"), limit=query.get("limit"))
    result = await service.list_project_comments(
        uuid.UUID(params["projectId"]),
        page=window.page,
        limit=window.limit,
        sort=query.get("sort", "newest"),
        viewer=viewer,
    )
    comments = result.unwrap()
    return json_response(paginated_envelope(comments, window.page, window.limit, result.total))


@router.post("/project/{projectId}", status_code=201, summary="Comment on a project")
async def create_comment(
    user: AuthenticatedUser = Depends(require_user),
    params: Dict[str, Any] = Depends(validate_params("ProjectIdParam")),
    body: Dict[str, Any] = Depends(validate_body("CommentCreate")),
    service: CommentService = Depends(get_comment_service),
):
    comment = (
        await service.create_comment(user, uuid.UUID(params["projectId"]), body["content"])
    ).unwrap()
    return json_response(
        success_envelope({"comment": comment}, "Comment created successfully"),
        status_code=201,
    )


@router.post("/{commentId}/like", summary="Like or unlike a comment")
async def toggle_like(
    user: AuthenticatedUser = Depends(require_user),
    params: Dict[str, Any] = Depends(validate_params("CommentIdParam")),
    service: CommentService = Depends(get_comment_service),
):
    state = (await service.toggle_like(user, uuid.UUID(params["commentId"]))).unwrap()
    message = "Comment liked" if state.is_liked else "Like removed"
    return json_response(success_envelope(state, message))


@router.get("/{commentId}/replies", summary="List replies to a comment, oldest first")
async def list_replies(
    params: Dict[str, Any] = Depends(validate_params("CommentIdParam")),
    query: Dict[str, Any] = Depends(validate_query("RepliesQuery")),
    viewer: Optional[AuthenticatedUser] = Depends(optional_user),
    service: CommentService = Depends(get_comment_service),
):
    window = resolve_window(
        page=query.get("page"),
        limit=query.get("limit"),
        default_limit=DEFAULT_REPLIES_LIMIT,
    )
    result = await service.list_replies(
        uuid.UUID(params["commentId"]),
        page=window.page,
        limit=window.limit,
        viewer=viewer,
    )
    replies = result.unwrap()
    return json_response(paginated_envelope(replies, window.page, window.limit, result.total))


@router.post("/{commentId}/replies", status_code=201, summary="Reply to a comment")
async def create_reply(
    user: AuthenticatedUser = Depends(require_user),
    params: Dict[str, Any] = Depends(validate_params("CommentIdParam")),
    body: Dict[str, Any] = Depends(validate_body("CommentCreate")),
    service: CommentService = Depends(get_comment_service),
):
    reply = (
        await service.create_reply(user, uuid.UUID(params["commentId"]), body["content"])
    ).unwrap()
    return json_response(
        success_envelope({"reply": reply}, "Reply created successfully"),
        status_code=201,
    )
