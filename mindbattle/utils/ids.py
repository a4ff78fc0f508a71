"""Identifier helpers for ledger, contest and audit records."""
import uuid


def generate_id(prefix: str) -> str:
    """Return a unique, prefixed identifier such as ``txn_3f2a...``."""
    return f"{prefix}_{uuid.uuid4().hex}"
