"""Document identifier generation."""

import uuid


def new_document_id() -> str:
    """Generate a compact document id for records inserted without ``_id``."""
    return uuid.uuid4().hex
