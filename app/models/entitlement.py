from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint

from app.utils.timestamps import utcnow


class EntitlementKind(str, Enum):
    purchased = "purchased"
    favorite = "favorite"
    download = "download"


class AssetEntitlement(SQLModel, table=True):
    """One row per (user, asset, kind): the unique constraint makes each kind a set."""

    __tablename__ = "asset_entitlement"
    __table_args__ = (
        UniqueConstraint("user_id", "asset_id", "kind", name="uq_user_asset_kind"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    asset_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("asset.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    kind: str = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
