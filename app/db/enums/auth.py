"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Portal roles.

    - STUDENT: files complaints, comments on their own complaints, reopens and rates
    - LECTURER: triages, responds to and resolves complaints
    - ADMIN: everything a lecturer can do, plus escalation rules and
      visibility of anonymous complainants
    """

    STUDENT = "student"
    LECTURER = "lecturer"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
