"""Service Layer - async DB orchestration around the pure core.

Invariants:
    - Services receive an AsyncSession, never create one
    - Multi-row writes go through run_in_transaction (infrastructure/database.py)
"""
