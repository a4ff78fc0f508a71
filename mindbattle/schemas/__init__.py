"""Pydantic schemas for API payloads and ledger values."""
