# Services package init
"""
SPV Gateway - Services Layer
==============================

Service Inventory:
    - DocumentService: upsert, merge, list and fetch against the collection,
      identifier parsing and BSON-to-JSON encoding
"""
