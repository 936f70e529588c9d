"""
成就体系数据模型

包括：
- Achievement: 成就定义
- UserAchievement: 用户成就记录
- AchievementProcessingLog: 回溯处理日志
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import (
    JSON,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rangexp.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class AchievementTier:
    """成就等级常量（仅用于展示）"""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class ProcessingStatus:
    """回溯处理状态常量"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    ACTIVE = (PENDING, PROCESSING)


class Achievement(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """成就定义表"""

    __tablename__ = "achievements"

    # 基本信息
    code: Mapped[str] = mapped_column(String(100), unique=True, comment="唯一标识码")
    name: Mapped[str] = mapped_column(String(200), comment="显示名称")
    description: Mapped[str] = mapped_column(Text, default="", comment="描述")

    # 分类与等级
    category: Mapped[str] = mapped_column(String(50), comment="分类")
    tier: Mapped[str] = mapped_column(
        String(20), default=AchievementTier.BRONZE, comment="等级: bronze/silver/gold/platinum"
    )
    xp_reward: Mapped[int] = mapped_column(Integer, default=0, comment="解锁奖励 XP")

    # 解锁条件（带 type 标签的 JSON 表达式）
    condition: Mapped[dict] = mapped_column(JSON, default=dict, comment="解锁条件")

    # 关系
    user_achievements: Mapped[list["UserAchievement"]] = relationship(
        "UserAchievement", back_populates="achievement", cascade="all, delete-orphan"
    )
    processing_logs: Mapped[list["AchievementProcessingLog"]] = relationship(
        "AchievementProcessingLog", back_populates="achievement", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_achievements_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Achievement(id={self.id}, code={self.code}, name={self.name})>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "tier": self.tier,
            "xp_reward": self.xp_reward,
            "condition": self.condition,
        }


class UserAchievement(Base, UUIDPrimaryKeyMixin):
    """
    用户成就记录表

    (user_id, achievement_id) 唯一索引是防止重复解锁的最终保证
    """

    __tablename__ = "user_achievements"

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    achievement_id: Mapped[UUID] = mapped_column(
        ForeignKey("achievements.id", ondelete="CASCADE"), index=True
    )
    unlocked_at: Mapped[datetime] = mapped_column(server_default=func.now(), comment="解锁时间")

    # 关系
    achievement: Mapped["Achievement"] = relationship(
        "Achievement", back_populates="user_achievements"
    )

    __table_args__ = (
        Index("ix_user_achievements_unique", "user_id", "achievement_id", unique=True),
        Index("ix_user_achievements_unlocked", "unlocked_at"),
    )

    def __repr__(self) -> str:
        return f"<UserAchievement(user_id={self.user_id}, achievement_id={self.achievement_id})>"


class AchievementProcessingLog(Base, UUIDPrimaryKeyMixin):
    """
    回溯处理日志

    每个成就同一时间最多一条 pending/processing 记录（尽力保证，无锁）
    """

    __tablename__ = "achievement_processing_logs"

    achievement_id: Mapped[UUID] = mapped_column(
        ForeignKey("achievements.id", ondelete="CASCADE"), index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=ProcessingStatus.PENDING, index=True
    )

    # 统计
    total_users: Mapped[int] = mapped_column(Integer, default=0)
    processed_users: Mapped[int] = mapped_column(Integer, default=0)
    awarded_count: Mapped[int] = mapped_column(Integer, default=0)

    # 时间
    started_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    achievement: Mapped["Achievement"] = relationship(
        "Achievement", back_populates="processing_logs"
    )

    def __repr__(self) -> str:
        return (
            f"<AchievementProcessingLog(achievement_id={self.achievement_id}, "
            f"status={self.status}, processed={self.processed_users}/{self.total_users})>"
        )
