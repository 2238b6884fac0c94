"""SQLAlchemy models and declarative base."""

from carecall.models.base import Base  # noqa: F401
from carecall.models.entities import (  # noqa: F401
    CallReport,
    PatientProfile,
)

__all__ = [
    "Base",
    "CallReport",
    "PatientProfile",
]
