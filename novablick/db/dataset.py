"""
Storage schema for uploaded datasets: one row per dataset, its inferred
columns and the raw rows as JSON documents.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

# JSONB on PostgreSQL so the ->> operators used by model-written queries work.
JsonDocument = JSON().with_variant(JSONB(), "postgresql")


def _new_id() -> str:
    return str(uuid.uuid4())


class Dataset(Base):
    __tablename__ = "datasets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    column_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    file_size_bytes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    delimiter: Mapped[Optional[str]] = mapped_column(String(10), default=",")
    has_header: Mapped[Optional[bool]] = mapped_column(Boolean, default=True)
    metadata_json: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JsonDocument, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    columns: Mapped[List["DatasetColumn"]] = relationship(
        "DatasetColumn",
        back_populates="dataset",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="DatasetColumn.position",
    )


class DatasetColumn(Base):
    __tablename__ = "dataset_columns"
    __table_args__ = (Index("dataset_columns_position_idx", "dataset_id", "position"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    dataset_id: Mapped[str] = mapped_column(ForeignKey("datasets.id", ondelete="cascade"), index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    data_type: Mapped[str] = mapped_column(String(50), nullable=False)
    null_ratio: Mapped[Optional[float]] = mapped_column(Float, default=0.0)
    unique_values: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    metadata_json: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JsonDocument, nullable=True)

    dataset: Mapped[Dataset] = relationship("Dataset", back_populates="columns")


class DatasetRowRecord(Base):
    __tablename__ = "dataset_rows"
    __table_args__ = (Index("dataset_rows_row_number_idx", "dataset_id", "row_number"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    dataset_id: Mapped[str] = mapped_column(ForeignKey("datasets.id", ondelete="cascade"), index=True)
    row_number: Mapped[int] = mapped_column(Integer, nullable=False)
    data: Mapped[Dict[str, Any]] = mapped_column(JsonDocument, nullable=False)
