"""
Identity resolution server: persistence, review workflow and HTTP API for
clustering person mentions and resolving them into stakeholders.

Run with ``uvicorn personserver.query.server:app``.
"""
