from enum import Enum


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class DocumentType(str, Enum):
    LAND_DECLARATION = "land_declaration"
    SUPPORTING_DOC = "supporting_doc"
    OTHER = "other"
