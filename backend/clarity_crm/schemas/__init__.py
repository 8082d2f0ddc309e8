"""Pydantic schemas - request validation and response shaping at the API boundary."""
