# Middleware package init
"""
FormBridge Backend — Middleware Package
========================================

Middleware Chain:
    Request → [CORS] → [Request ID] → [Logging] → [Body Limit] → [GZip] → Route Handler

    0. CORS outermost so error answers produced by inner middleware
       still carry Access-Control-* headers
    1. Request ID next so every later log line can be correlated
    2. Logging records status and duration of everything below it,
       including 413 answers from the body limit
    3. Body Limit rejects oversized uploads before the body is read
"""
