# Middleware package init
"""
Best Bike Paths Backend - Middleware Package
=============================================

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit: per-IP sliding window, rejects before any work is done
    2. Request ID: correlation id in a ContextVar and the X-Request-ID header
    3. Logging: one access line per request with status and duration
"""
