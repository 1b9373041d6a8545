from __future__ import annotations

from uuid import uuid4


def create_id(prefix: str) -> str:
    # e.g. disc_3f9c0a...; the prefix tells entity types apart in logs and URLs
    return f"{prefix}{uuid4().hex}"
