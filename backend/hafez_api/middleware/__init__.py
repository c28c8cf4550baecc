"""
Hafez Quraan Backend — Middleware Package
===========================================

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [CORS] → Route Handler

    1. Request ID: Generate correlation ID for logging and error reports
    2. Logging: Log request details with the generated request ID
    3. CORS: Starlette's CORSMiddleware (fixed origin allow-list, GET/POST only)

    Responses travel back through the same chain in reverse, which is how
    the request id ends up in the response headers and the access log
    sees the final status code.
"""
