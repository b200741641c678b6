"""
DevConnect Backend: Request JSON Schemas
==========================================

What:  The JSON-Schema (Draft 7) documents every request is validated against.
How:   `DEFAULT_SCHEMAS` maps a schema name to its document; the app factory
       registers all of them into a SchemaRegistry and freezes it.
Who:   Route handlers reference these names through validate_body /
       validate_query / validate_params.

Query schemas see values after numeric coercion, so `page` and `limit` are
declared as integers. `limit` carries no upper bound here: the pagination
policy clamps it to 100 instead of rejecting the request.
"""

from typing import Any, Dict

from devconnect.pagination import MAX_POSITION

UUID_PATTERN = "^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
USERNAME_PATTERN = "^[a-zA-Z0-9_]+$"


def _uuid_param(name: str, description: str) -> Dict[str, Any]:
    return {
        "type": "object",
        "required": [name],
        "properties": {
            name: {
                "type": "string",
                "format": "uuid",
                "pattern": UUID_PATTERN,
                "description": description,
            }
        },
    }


_PAGE = {"type": "integer", "minimum": 1, "maximum": MAX_POSITION, "default": 1, "description": "Page number"}
_LIMIT = {
    "type": "integer",
    "default": 10,
    "description": "Items per page, clamped to 1-100",
}
_OFFSET = {"type": "integer", "minimum": 0, "maximum": MAX_POSITION, "description": "Explicit offset, overrides page"}
# No default: an explicit offset must be able to decide the page
_PAGE_OR_OFFSET = {
    "type": "integer",
    "minimum": 1,
    "maximum": MAX_POSITION,
    "description": "Page number; an explicit offset takes precedence",
}
_SEARCH = {"type": "string", "minLength": 2, "maxLength": 100, "description": "Search term"}
_URL = {"type": "string", "format": "uri"}
_NULLABLE_URL = {"type": ["string", "null"], "format": "uri"}

_PROJECT_PROPERTIES: Dict[str, Any] = {
    "title": {"type": "string", "minLength": 3, "maxLength": 100, "example": "E-commerce with React"},
    "description": {
        "type": "string",
        "minLength": 10,
        "maxLength": 1000,
        "example": "Online store built with React, FastAPI and PostgreSQL",
    },
    "demo_url": {**_URL, "example": "https://my-project-demo.vercel.app"},
    "github_url": {**_URL, "example": "https://github.com/user/my-project"},
    "tech_stack": {
        "type": "array",
        "items": {"type": "string", "minLength": 1},
        "minItems": 1,
        "example": ["React", "FastAPI", "PostgreSQL"],
    },
    "image_url": {**_URL, "example": "https://example.com/project.jpg"},
}


DEFAULT_SCHEMAS: Dict[str, Dict[str, Any]] = {
    # ── Auth ──────────────────────────────────────────────────────────────
    "AuthRegister": {
        "type": "object",
        "required": ["full_name", "username", "email", "password"],
        "properties": {
            "full_name": {"type": "string", "minLength": 2, "maxLength": 100},
            "username": {
                "type": "string",
                "minLength": 3,
                "maxLength": 30,
                "pattern": USERNAME_PATTERN,
            },
            "email": {"type": "string", "format": "email"},
            "password": {"type": "string", "minLength": 8, "format": "password"},
        },
    },
    "AuthLogin": {
        "type": "object",
        "required": ["email", "password"],
        "properties": {
            "email": {"type": "string", "format": "email"},
            "password": {"type": "string", "minLength": 1, "format": "password"},
        },
    },
    "AuthRefresh": {
        "type": "object",
        "required": ["refresh_token"],
        "properties": {"refresh_token": {"type": "string", "minLength": 1}},
    },
    # ── Query strings ─────────────────────────────────────────────────────
    "PaginationQuery": {
        "type": "object",
        "properties": {"page": _PAGE, "limit": _LIMIT, "search": _SEARCH},
    },
    "ProjectListQuery": {
        "type": "object",
        "properties": {"page": _PAGE_OR_OFFSET, "limit": _LIMIT, "offset": _OFFSET, "search": _SEARCH},
    },
    "UserProjectsQuery": {
        "type": "object",
        "properties": {"limit": _LIMIT, "offset": {**_OFFSET, "default": 0}},
    },
    "CommentListQuery": {
        "type": "object",
        "properties": {
            "page": _PAGE,
            "limit": _LIMIT,
            "sort": {
                "type": "string",
                "enum": ["newest", "oldest", "popular"],
                "default": "newest",
            },
        },
    },
    "RepliesQuery": {
        "type": "object",
        "properties": {"page": _PAGE, "limit": {**_LIMIT, "default": 5}},
    },
    "ProfileListQuery": {
        "type": "object",
        "properties": {"page": _PAGE_OR_OFFSET, "limit": _LIMIT, "offset": _OFFSET, "search": _SEARCH},
    },
    # ── Path parameters ───────────────────────────────────────────────────
    "IdParam": _uuid_param("id", "Resource identifier"),
    "UserIdParam": _uuid_param("userId", "User identifier"),
    "ProjectIdParam": _uuid_param("projectId", "Project identifier"),
    "CommentIdParam": _uuid_param("commentId", "Comment identifier"),
    # ── Bodies ────────────────────────────────────────────────────────────
    "ProjectCreate": {
        "type": "object",
        "required": ["title", "description", "tech_stack"],
        "properties": _PROJECT_PROPERTIES,
        "additionalProperties": False,
    },
    "ProjectUpdate": {
        "type": "object",
        "minProperties": 1,
        "properties": _PROJECT_PROPERTIES,
        "additionalProperties": False,
    },
    "CommentCreate": {
        "type": "object",
        "required": ["content"],
        "properties": {
            "content": {
                "type": "string",
                "minLength": 1,
                "maxLength": 2000,
                "pattern": "\\S",
            }
        },
    },
    "ProfileUpdate": {
        "type": "object",
        "minProperties": 1,
        "additionalProperties": False,
        "properties": {
            "full_name": {"type": "string", "minLength": 2, "maxLength": 100},
            "username": {
                "type": "string",
                "minLength": 3,
                "maxLength": 30,
                "pattern": USERNAME_PATTERN,
            },
            "bio": {"type": ["string", "null"], "maxLength": 500},
            "avatar_url": _NULLABLE_URL,
            "website": _NULLABLE_URL,
            "github_url": _NULLABLE_URL,
            "linkedin_url": _NULLABLE_URL,
        },
    },
}
