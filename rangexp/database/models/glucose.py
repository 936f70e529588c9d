"""
血糖记录模型
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from rangexp.database.base import Base, UUIDPrimaryKeyMixin


class GlucoseContext:
    """测量场景常量"""
    FASTING = "FASTING"          # 空腹
    BEFORE_MEAL = "BEFORE_MEAL"  # 餐前
    AFTER_MEAL = "AFTER_MEAL"    # 餐后
    BEDTIME = "BEDTIME"          # 睡前
    OTHER = "OTHER"              # 其他


class GlucoseReading(Base, UUIDPrimaryKeyMixin):
    """血糖记录表"""

    __tablename__ = "glucose_readings"

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    value: Mapped[int] = mapped_column(Integer, comment="mg/dL")
    context: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(server_default=func.now())
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    __table_args__ = (
        Index("ix_glucose_readings_user_recorded", "user_id", "recorded_at"),
        Index("ix_glucose_readings_user_context", "user_id", "context"),
    )

    def __repr__(self) -> str:
        return f"<GlucoseReading(id={self.id}, user_id={self.user_id}, value={self.value})>"
