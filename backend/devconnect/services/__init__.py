"""
DevConnect Backend: Services Layer
====================================

What:  Business logic between routes (HTTP) and the store (persistence).
How:   Every resource-service method returns a ServiceResult and never
       raises; routes call `unwrap()`.

Service Inventory:
    - AuthService:      register / login / refresh / logout / current user
    - SupabaseAuthClient: REST client for the hosted auth API
    - ProjectService:   project CRUD with ownership checks
    - CommentService:   threaded comments and replies
    - LikeAggregator:   like toggle keeping likes_count consistent
    - ProfileService:   profile directory, stats, self-update
"""
