"""
SPV Gateway - Application Package
===================================

Layers:

    ┌─────────────────────────────────────┐
    │   Routes + Middleware (HTTP)        │
    ├─────────────────────────────────────┤
    │   DocumentService (store calls)     │
    ├─────────────────────────────────────┤
    │   Schemas (Document, responses)     │
    ├─────────────────────────────────────┤
    │   Database (AsyncMongoClient)       │
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
