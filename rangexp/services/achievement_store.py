"""
成就存储

成就定义、解锁记录、回溯处理日志以及成就核心需要读取的用户 / 社交数据。
所有方法只做持久化，不含业务判断
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple
from uuid import UUID

import structlog
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction
from sqlalchemy.orm import selectinload

from rangexp.database.models import (
    Achievement,
    AchievementProcessingLog,
    ActivityFeed,
    Friendship,
    FriendshipStatus,
    Notification,
    ProcessingStatus,
    User,
    UserAchievement,
)

logger = structlog.get_logger(__name__)


class AchievementStore:
    """成就存储"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()

    def savepoint(self) -> AsyncSessionTransaction:
        """
        SAVEPOINT 上下文

        块内异常时只回滚块内的语句，外层事务保持可用
        """
        return self.db.begin_nested()

    # ============================================================
    # 成就定义
    # ============================================================

    async def list_achievements(self) -> List[Achievement]:
        """全部成就，按创建时间排序"""
        result = await self.db.execute(
            select(Achievement).order_by(Achievement.created_at.asc(), Achievement.code.asc())
        )
        return list(result.scalars().all())

    async def get_achievement(self, achievement_id: UUID) -> Optional[Achievement]:
        return await self.db.get(Achievement, achievement_id)

    async def get_achievement_by_code(self, code: str) -> Optional[Achievement]:
        result = await self.db.execute(select(Achievement).where(Achievement.code == code))
        return result.scalar_one_or_none()

    async def list_by_categories(self, categories: Sequence[str]) -> List[Achievement]:
        """指定分类下的成就"""
        if not categories:
            return []
        result = await self.db.execute(
            select(Achievement)
            .where(Achievement.category.in_(list(categories)))
            .order_by(Achievement.created_at.asc(), Achievement.code.asc())
        )
        return list(result.scalars().all())

    async def upsert_achievement(self, data: Dict[str, Any]) -> Achievement:
        """按 code 创建或更新成就定义"""
        achievement = await self.get_achievement_by_code(data["code"])
        if achievement is None:
            achievement = Achievement(**data)
            self.db.add(achievement)
        else:
            for key, value in data.items():
                setattr(achievement, key, value)
        await self.db.flush()
        return achievement

    # ============================================================
    # 解锁记录
    # ============================================================

    async def get_unlocked_achievement_ids(self, user_id: UUID) -> Set[UUID]:
        """用户已解锁的成就 ID 集合"""
        result = await self.db.execute(
            select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
        )
        return {row[0] for row in result.all()}

    async def has_unlocked(self, user_id: UUID, achievement_id: UUID) -> bool:
        result = await self.db.execute(
            select(UserAchievement.id).where(
                UserAchievement.user_id == user_id,
                UserAchievement.achievement_id == achievement_id,
            )
        )
        return result.first() is not None

    async def list_user_achievements(self, user_id: UUID) -> List[UserAchievement]:
        """用户的解锁记录（含成就定义）"""
        result = await self.db.execute(
            select(UserAchievement)
            .options(selectinload(UserAchievement.achievement))
            .where(UserAchievement.user_id == user_id)
            .order_by(UserAchievement.unlocked_at.desc())
        )
        return list(result.scalars().all())

    async def create_user_achievement(
        self,
        user_id: UUID,
        achievement_id: UUID,
    ) -> Optional[UserAchievement]:
        """
        写入解锁记录

        在 SAVEPOINT 中插入，违反唯一索引时回滚到保存点并返回 None（视为已解锁）
        """
        user_achievement = UserAchievement(user_id=user_id, achievement_id=achievement_id)
        try:
            async with self.db.begin_nested():
                self.db.add(user_achievement)
        except IntegrityError:
            logger.info(
                "user_achievement_exists",
                user_id=str(user_id),
                achievement_id=str(achievement_id),
            )
            return None
        return user_achievement

    # ============================================================
    # 用户
    # ============================================================

    async def get_user(self, user_id: UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_user_position(self, user: User) -> int:
        """按注册顺序的序号（从 1 开始），注册时间相同按 ID 升序"""
        result = await self.db.execute(
            select(func.count(User.id)).where(
                or_(
                    User.created_at < user.created_at,
                    and_(User.created_at == user.created_at, User.id < user.id),
                )
            )
        )
        return result.scalar_one() + 1

    async def count_users(self) -> int:
        result = await self.db.execute(select(func.count(User.id)))
        return result.scalar_one()

    async def list_user_ids_after(self, cursor: Optional[UUID], limit: int) -> List[UUID]:
        """按 ID 升序的下一批用户"""
        stmt = select(User.id).order_by(User.id.asc()).limit(limit)
        if cursor is not None:
            stmt = stmt.where(User.id > cursor)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def increment_user_xp(self, user_id: UUID, amount: int) -> None:
        """直接增加 XP（不重算等级）"""
        await self.db.execute(
            update(User).where(User.id == user_id).values(xp=User.xp + amount)
        )

    # ============================================================
    # 社交计数
    # ============================================================

    async def count_accepted_friends(self, user_id: UUID, since: Optional[datetime] = None) -> int:
        """已接受的好友关系数（发起方或接收方）"""
        conditions = [
            Friendship.status == FriendshipStatus.ACCEPTED,
            or_(Friendship.requester_id == user_id, Friendship.receiver_id == user_id),
        ]
        if since is not None:
            conditions.append(Friendship.created_at >= since)
        result = await self.db.execute(select(func.count(Friendship.id)).where(and_(*conditions)))
        return result.scalar_one()

    async def count_activities(
        self,
        user_id: UUID,
        activity_type: str,
        since: Optional[datetime] = None,
    ) -> int:
        """用户发出的某类动态数"""
        conditions = [ActivityFeed.sender_id == user_id, ActivityFeed.type == activity_type]
        if since is not None:
            conditions.append(ActivityFeed.created_at >= since)
        result = await self.db.execute(select(func.count(ActivityFeed.id)).where(and_(*conditions)))
        return result.scalar_one()

    # ============================================================
    # 通知
    # ============================================================

    async def create_notification(
        self,
        user_id: UUID,
        notification_type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            data=data or {},
        )
        self.db.add(notification)
        await self.db.flush()
        return notification

    # ============================================================
    # 回溯处理日志
    # ============================================================

    async def get_active_processing_log(self, achievement_id: UUID) -> Optional[AchievementProcessingLog]:
        """未结束（pending / processing）的最新日志"""
        result = await self.db.execute(
            select(AchievementProcessingLog)
            .where(
                AchievementProcessingLog.achievement_id == achievement_id,
                AchievementProcessingLog.status.in_(ProcessingStatus.ACTIVE),
            )
            .order_by(AchievementProcessingLog.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_processing_log(self, achievement_id: UUID) -> AchievementProcessingLog:
        log = AchievementProcessingLog(
            achievement_id=achievement_id,
            status=ProcessingStatus.PENDING,
            total_users=0,
            processed_users=0,
            awarded_count=0,
        )
        self.db.add(log)
        await self.db.flush()
        return log

    async def update_processing_log(self, log_id: UUID, **fields: Any) -> None:
        """按 ID 更新日志字段"""
        await self.db.execute(
            update(AchievementProcessingLog)
            .where(AchievementProcessingLog.id == log_id)
            .values(**fields)
        )

    async def latest_processing_log(self, achievement_id: UUID) -> Optional[AchievementProcessingLog]:
        result = await self.db.execute(
            select(AchievementProcessingLog)
            .where(AchievementProcessingLog.achievement_id == achievement_id)
            .order_by(AchievementProcessingLog.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_achievements_without_completed_log(self) -> List[Achievement]:
        """还没有成功完成过回溯处理的成就"""
        completed = select(AchievementProcessingLog.achievement_id).where(
            AchievementProcessingLog.status == ProcessingStatus.COMPLETED
        )
        result = await self.db.execute(
            select(Achievement)
            .where(Achievement.id.not_in(completed))
            .order_by(Achievement.created_at.asc(), Achievement.code.asc())
        )
        return list(result.scalars().all())

    async def list_achievements_with_latest_log(
        self,
    ) -> List[Tuple[Achievement, Optional[AchievementProcessingLog]]]:
        """每个成就及其最新处理日志"""
        achievements = await self.list_achievements()
        return [
            (achievement, await self.latest_processing_log(achievement.id))
            for achievement in achievements
        ]
