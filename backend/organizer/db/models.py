"""SQLAlchemy ORM models for document metadata."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class DocumentRow(Base):
    """Documents table - one row per stored file.

    `path` is unique: it is the storage key and identifies at most one row.
    """

    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("path", name="uq_documents_path"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    description: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(String(255), nullable=False)
    created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    tagged_resources: Mapped[list["TaggedResource"]] = relationship(
        "TaggedResource",
        back_populates="document",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="TaggedResource.id",
    )


class TaggedResource(Base):
    """Tag assignments; their ids are exposed as a document's tag ids."""

    __tablename__ = "tagged_resources"
    __table_args__ = (Index("idx_tagged_resources_resource", "resource_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tag_id: Mapped[str] = mapped_column(String(36), nullable=False)
    resource_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )

    # Relationships
    document: Mapped["DocumentRow"] = relationship(
        "DocumentRow", back_populates="tagged_resources"
    )
