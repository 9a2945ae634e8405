"""
SPV Gateway - API Routes Package
==================================

Route Inventory:
    - health.py:     GET  /                 (fixed greeting)
                     GET  /health           (MongoDB readiness check)
    - documents.py:  POST /spv              (create or replace)
                     PUT  /spv/{id}         (merge fields)
                     GET  /spv              (list all)
                     GET  /spv/{id}         (get one)

Routes stay thin: extract body/path, call DocumentService, return the result.
"""
