import secrets
from datetime import datetime
from typing import Any, Optional
from sqlalchemy import String, Integer, Boolean, DateTime, Text, JSON, Enum as SAEnum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from grant_portal.core.db import Base
from grant_portal.models.base import TimestampMixin, utcnow
from grant_portal.models.enums import ApplicationStatus

# No 0/O, 1/l/I so public ids survive being read out over the phone
PUBLIC_ID_ALPHABET = "abcdefghjkmnpqrstuvwxyz23456789"
PUBLIC_ID_LENGTH = 8


def generate_public_id() -> str:
    return "".join(secrets.choice(PUBLIC_ID_ALPHABET) for _ in range(PUBLIC_ID_LENGTH))


class GrantApplication(Base, TimestampMixin):
    __tablename__ = "grant_applications"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    public_id: Mapped[str] = mapped_column(
        String(12), unique=True, index=True, nullable=False, default=generate_public_id
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status: Mapped[ApplicationStatus] = mapped_column(
        SAEnum(ApplicationStatus, native_enum=False, length=20),
        default=ApplicationStatus.DRAFT,
        nullable=False,
        index=True,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    progress_percentage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Section completion flags
    agricultural_return_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    land_declaration_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    consent_form_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    supporting_docs_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Consent form (latest completion wins)
    digital_signature: Mapped[str | None] = mapped_column(Text, nullable=True)  # PNG data URL
    consent_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    consent_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    consent_farm_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    consent_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    resubmission_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="grant_applications")
    agricultural_return: Mapped[Optional["AgriculturalReturn"]] = relationship(
        "AgriculturalReturn", back_populates="application", uselist=False, cascade="all, delete-orphan"
    )
    documents: Mapped[list["Document"]] = relationship(
        "Document", back_populates="application", cascade="all, delete-orphan"
    )


class AgriculturalReturn(Base, TimestampMixin):
    """RSS Agricultural Return, one per application. Sections are stored as JSON objects."""
    __tablename__ = "agricultural_returns"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("grant_applications.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    farm_details_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)  # Section A
    accreditation_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)  # Section B
    management_plans: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)  # Section C
    facilities_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)  # Section D
    livestock_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)  # Section E
    tier3_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)  # Section F
    financial_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)  # Section G

    # Section H - Declaration
    declaration_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    declaration_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    declaration_signature: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_complete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_sections: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    application: Mapped["GrantApplication"] = relationship("GrantApplication", back_populates="agricultural_return")


class Document(Base):
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("grant_applications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)  # S3 URL or local path
    document_type: Mapped[str] = mapped_column(String(50), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    application: Mapped["GrantApplication"] = relationship("GrantApplication", back_populates="documents")
