"""Pydantic request/response contracts, grouped by endpoint family."""
