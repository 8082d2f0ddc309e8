"""API Layer - FastAPI routers, request dependencies and error handlers.

Invariants:
    - Routers registered explicitly in main.py (no auto-discovery)
    - All endpoints return JSON; errors use the ClarityError envelope
"""
