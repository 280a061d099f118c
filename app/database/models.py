"""SQLAlchemy models for all database tables."""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")


class Practice(Base):
    """Healthcare practice; the unit of data isolation."""

    __tablename__ = "practices"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    members: Mapped[list["PracticeMember"]] = relationship(
        "PracticeMember", back_populates="practice", cascade="all, delete-orphan"
    )
    documents: Mapped[list["Document"]] = relationship(
        "Document", back_populates="practice", cascade="all, delete-orphan"
    )


class PracticeMember(Base):
    """Membership linking an identity to a practice.

    ``user_id`` is unique: a user belongs to at most one practice.
    """

    __tablename__ = "practice_members"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_practice_members_user_id"),
        CheckConstraint("role IN ('owner', 'member')", name="ck_practice_members_role"),
        Index("ix_practice_members_practice_user", "practice_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    practice_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("practices.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False, default="member")  # owner | member
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    practice: Mapped["Practice"] = relationship("Practice", back_populates="members")


class Document(Base):
    """Uploaded insurance plan file and its processing status."""

    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint(
            "status IN ('uploaded', 'queued', 'processing', 'complete', 'error')",
            name="ck_documents_status",
        ),
        Index("ix_documents_practice_created", "practice_id", "created_at"),
        Index("ix_documents_practice_status", "practice_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    practice_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("practices.id", ondelete="CASCADE"), nullable=False
    )
    storage_ref: Mapped[str] = mapped_column(
        String, nullable=False, comment="Object path inside the storage bucket"
    )
    filename: Mapped[str] = mapped_column(String, nullable=False)
    content_type: Mapped[str] = mapped_column(String, nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="uploaded"
    )  # uploaded | queued | processing | complete | error
    uploaded_by: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    practice: Mapped["Practice"] = relationship("Practice", back_populates="documents")
    analyses: Mapped[list["Analysis"]] = relationship(
        "Analysis",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Analysis(Base):
    """One attempt to extract a structured benefit report from a document."""

    __tablename__ = "analyses"
    __table_args__ = (
        CheckConstraint(
            "status IN ('queued', 'processing', 'complete', 'error')",
            name="ck_analyses_status",
        ),
        CheckConstraint(
            "(status = 'complete') = (report IS NOT NULL)",
            name="ck_analyses_report_iff_complete",
        ),
        CheckConstraint(
            "(status = 'error') = (error_message IS NOT NULL)",
            name="ck_analyses_error_iff_error",
        ),
        Index("ix_analyses_document_created", "document_id", "created_at"),
        Index("ix_analyses_practice_id", "practice_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    practice_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("practices.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="queued"
    )  # queued | processing | complete | error
    report: Mapped[dict | None] = mapped_column(
        JSONType, nullable=True, comment="Structured plan report, set iff status = complete"
    )
    error_message: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Failure reason, set iff status = error"
    )
    workflow_id: Mapped[str | None] = mapped_column(
        String, nullable=True, comment="Temporal workflow running the extraction"
    )
    created_by: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    document: Mapped["Document"] = relationship("Document", back_populates="analyses")
