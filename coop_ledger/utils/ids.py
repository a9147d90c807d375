"""Identifier generation"""

import uuid


def new_id(prefix: str) -> str:
    """Prefixed random id, e.g. txn_3f2a9c0d41b7"""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"
