"""
admin/schemas.py

Response schemas for the admin dashboard.
"""

from pydantic import Field

from easyserve.core.schemas import CamelModel


class PlatformStats(CamelModel):
    """Headline counts shown on the admin dashboard."""

    users: int = Field(..., description="Requester accounts")
    providers: int = Field(..., description="Provider accounts")
    bookings: int
    categories: int
