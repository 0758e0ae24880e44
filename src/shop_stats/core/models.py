"""Core domain models for the shop statistics service.

Records are immutable once constructed. Users and orders are only ever
built from store documents (see :mod:`shop_stats.store.mapping`).
"""

from __future__ import annotations

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class Credentials(BaseModel):
    """Caller-supplied login credentials. Never persisted."""

    username: str
    password: str

    model_config = {"frozen": True}

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


# ---------------------------------------------------------------------------
# Stored entities
# ---------------------------------------------------------------------------

class User(BaseModel):
    """A shop user. Identity key is ``name`` (stored as ``_id``)."""

    name: str = Field(alias="_id")
    password: str
    email: str | None = None
    full_name: str | None = None

    model_config = {"frozen": True, "populate_by_name": True}


class Order(BaseModel):
    """A single order of a user. ``id`` is assigned by the store."""

    id: str | None = Field(default=None, alias="_id")
    username: str
    amount: int
    description: str | None = None

    model_config = {"frozen": True, "populate_by_name": True}


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

class OrderStatistics(BaseModel):
    """Aggregated order statistics for one user, computed once per run."""

    username: str
    order_count: int
    total_amount: int
    average_amount: float  # 0.0 when order_count == 0

    model_config = {"frozen": True}

    def display(self) -> str:
        """Human-readable multi-line rendering used by console reporters."""
        return (
            f"User:    {self.username}\n"
            f"Orders:  {self.order_count}\n"
            f"Total:   {self.total_amount}\n"
            f"Average: {self.average_amount:.2f}"
        )
