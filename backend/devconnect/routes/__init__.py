"""
DevConnect Backend: API Routes Package
========================================

Route Inventory:
    - auth.py:      /api/auth/register, /login, /refresh, /logout, /me
    - projects.py:  /api/projects, /api/projects/{id}, /api/projects/user/{userId}
    - comments.py:  /api/comments/project/{projectId}, /api/comments/{commentId}/like,
                    /api/comments/{commentId}/replies
    - profiles.py:  /api/profiles, /api/profiles/search, /api/profiles/stats,
                    /api/profiles/{id}, /api/profiles/me
    - health.py:    /health

Routes stay thin: validate, call a service, unwrap, wrap in an envelope.
"""
