"""Notification model."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class Notification(BaseModel):
    """An append-only notification row addressed to one user."""
    user_id: str
    type: str
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)


class NotifyAdminRequest(BaseModel):
    """
    Body of the admin notification endpoint.

    ``action="notify_user"`` tells ``user_id`` their deposit was reviewed;
    any other action tells every admin about a reported deposit.
    """
    action: Optional[str] = None
    amount: float
    tx_hash: Optional[str] = None
    user_id: str
    user_email: Optional[str] = None
    status: Optional[str] = None
