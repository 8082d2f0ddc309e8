"""Clarity CRM application package - sales pipeline, capacity planning and KPIs.

Invariants:
    - Package root contains no executable code (no import side effects)
"""
