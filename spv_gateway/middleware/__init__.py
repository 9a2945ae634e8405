# Middleware package init
"""
SPV Gateway - Middleware Package
==================================

Middleware Chain (outermost first):
    Request → [Request ID] → [CORS] → [Access log] → Route Handler

    1. Request ID: correlation ID on every response, OPTIONS included.
    2. CORS: OPTIONS is answered with 204 here; every other response,
       errors included, gets the CORS headers.
    3. Access log: outcome line per request, and a JSON 500 for exceptions
       no handler claimed.
"""
