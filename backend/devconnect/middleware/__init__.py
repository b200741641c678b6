"""
DevConnect Backend: Middleware Package
========================================

Middleware Chain:
    Request -> [Request ID] -> [Logging] -> [GZip] -> [CORS] -> Route Handler

    Request ID runs first so the access log line and every error log carry
    the same id; the response travels the chain in reverse, picking up the
    X-Request-ID header last.
"""
