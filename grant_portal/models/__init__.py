from grant_portal.models.auth import User
from grant_portal.models.domain import GrantApplication, AgriculturalReturn, Document

__all__ = [
    "User",
    "GrantApplication",
    "AgriculturalReturn",
    "Document",
]
