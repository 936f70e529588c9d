"""
社交模型

- Friendship: 好友关系
- ActivityFeed: 动态流
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from rangexp.database.base import Base, UUIDPrimaryKeyMixin


class FriendshipStatus:
    """好友关系状态常量"""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ActivityType:
    """动态类型常量"""
    SHARE = "SHARE"
    ENCOURAGEMENT = "ENCOURAGEMENT"
    UNLOCK_ACHIEVEMENT = "UNLOCK_ACHIEVEMENT"


class Friendship(Base, UUIDPrimaryKeyMixin):
    """好友关系表"""

    __tablename__ = "friendships"

    requester_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    receiver_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    status: Mapped[str] = mapped_column(String(20), default=FriendshipStatus.PENDING)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    __table_args__ = (
        Index("ix_friendships_pair", "requester_id", "receiver_id", unique=True),
        Index("ix_friendships_receiver", "receiver_id"),
    )


class ActivityFeed(Base, UUIDPrimaryKeyMixin):
    """动态流表"""

    __tablename__ = "activity_feed"

    sender_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    receiver_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(50))
    message: Mapped[str] = mapped_column(Text)
    data: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    __table_args__ = (
        Index("ix_activity_feed_sender_type", "sender_id", "type"),
        Index("ix_activity_feed_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ActivityFeed(id={self.id}, sender_id={self.sender_id}, type={self.type})>"
