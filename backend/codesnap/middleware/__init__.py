# Middleware package init
"""
CodeSnap Backend — Middleware Package
=======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit first: abusive clients are rejected before anything runs
    2. Request ID: correlation id for logs and error bodies
    3. Logging: method, path, status and duration, tagged with the request id

    Responses travel back through the chain in reverse, so the request id
    header and the access log line are both added on the way out.
"""
