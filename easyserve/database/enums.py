"""
easyserve/database/enums.py

Enumerations

Defines enumerations shared across the platform:
- UserRole: Roles assigned to accounts (User, Provider, Admin)
"""

from enum import Enum

# ---------------------------------------------------
# User Role Enumeration
# ---------------------------------------------------


class UserRole(str, Enum):
    """
    Enum representing account roles for access control.

    Values:
    - USER: a requester posting service requests
    - PROVIDER: a vendor bidding on or accepting requests
    - ADMIN: platform operator
    """

    USER = "user"
    PROVIDER = "provider"
    ADMIN = "admin"
