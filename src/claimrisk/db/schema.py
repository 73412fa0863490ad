# src/claimrisk/db/schema.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class EncoderStateRow(Base):
    """
    Frozen encoder parameters, one row per fitted version.
    """
    __tablename__ = "encoder_states"

    version: Mapped[str] = mapped_column(String, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
    )
    schema_version: Mapped[str] = mapped_column(String, nullable=False)
    n_records: Mapped[int] = mapped_column(Integer, nullable=False)
    state_json: Mapped[str] = mapped_column(Text, nullable=False)


class ModelArtifactRow(Base):
    """
    Trained denial model registry.
    """
    __tablename__ = "model_artifacts"

    model_id: Mapped[str] = mapped_column(String, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
    )
    encoder_version: Mapped[str] = mapped_column(String, nullable=False, index=True)
    feature_names_json: Mapped[str] = mapped_column(Text, nullable=False)
    # base score, learning rate and trees; JSON keeps full float precision
    ensemble_json: Mapped[str] = mapped_column(Text, nullable=False)
    params_json: Mapped[str] = mapped_column(Text, nullable=False)
    metrics_json: Mapped[str] = mapped_column(Text, nullable=False)
    dataset_name: Mapped[str] = mapped_column(String, nullable=False)
    dataset_hash: Mapped[str] = mapped_column(String, nullable=False)
