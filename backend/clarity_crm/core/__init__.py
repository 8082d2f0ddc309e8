"""Core Layer - pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, models/ or db/
    - All functions are deterministic given their inputs (callers pass `now`)
"""
