"""
通知模型
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from rangexp.database.base import Base, UUIDPrimaryKeyMixin


class NotificationType:
    """通知类型常量"""
    ACHIEVEMENT = "ACHIEVEMENT"
    FRIEND_REQUEST = "FRIEND_REQUEST"
    ENCOURAGEMENT = "ENCOURAGEMENT"
    REMINDER = "REMINDER"


class Notification(Base, UUIDPrimaryKeyMixin):
    """通知表"""

    __tablename__ = "notifications"

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    type: Mapped[str] = mapped_column(String(50))
    title: Mapped[str] = mapped_column(String(200))
    message: Mapped[str] = mapped_column(Text)
    data: Mapped[dict] = mapped_column(JSON, default=dict)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )
