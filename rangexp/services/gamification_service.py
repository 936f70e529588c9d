"""
游戏化服务

XP、等级与连续打卡。等级提升 / 连续天数变化时通过注入的回调触发成就检查，
不直接依赖成就服务
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rangexp.core.achievement_triggers import AchievementTrigger
from rangexp.core.conditions import progress_percentage
from rangexp.core.exceptions import UserNotFoundError
from rangexp.core.time_windows import to_local_date
from rangexp.database.models import User

logger = structlog.get_logger(__name__)

TriggerCallback = Callable[[UUID, AchievementTrigger, Optional[Dict[str, Any]]], Awaitable[Any]]

FIRST_LEVEL_XP = 100
LEVEL_GROWTH = 1.5


def xp_for_level(level: int) -> int:
    """
    达到某等级所需的累计 XP

    每级增量从 100 开始，按 1.5 倍（向下取整）增长：0, 100, 250, 475, ...
    """
    total = 0
    step = FIRST_LEVEL_XP
    for _ in range(2, level + 1):
        total += step
        step = int(step * LEVEL_GROWTH)
    return total


def calculate_level(xp: int) -> int:
    """累计 XP 对应的等级"""
    level = 1
    step = FIRST_LEVEL_XP
    threshold = step
    while xp >= threshold:
        level += 1
        step = int(step * LEVEL_GROWTH)
        threshold += step
    return level


@dataclass
class XpResult:
    """加 XP 结果"""
    xp: int
    level: int
    xp_gained: int
    reason: str
    leveled_up: bool = False


class GamificationService:
    """游戏化服务"""

    def __init__(self, db: AsyncSession, raise_trigger: Optional[TriggerCallback] = None):
        self.db = db
        self.raise_trigger = raise_trigger

    async def _get_user(self, user_id: UUID) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    async def _raise(self, user_id: UUID, trigger: AchievementTrigger, data: Dict[str, Any]) -> None:
        if self.raise_trigger is not None:
            await self.raise_trigger(user_id, trigger, data)

    async def add_xp(self, user_id: UUID, amount: int, reason: str) -> XpResult:
        """
        增加 XP 并重算等级

        Raises:
            UserNotFoundError: 用户不存在
        """
        user = await self._get_user(user_id)
        old_level = user.level

        user.xp = user.xp + amount
        user.level = calculate_level(user.xp)
        user.last_active_at = datetime.now(timezone.utc)
        await self.db.flush()

        leveled_up = user.level > old_level
        logger.info(
            "xp_added",
            user_id=str(user_id),
            amount=amount,
            reason=reason,
            xp=user.xp,
            level=user.level,
        )

        if leveled_up:
            await self._raise(
                user_id,
                AchievementTrigger.LEVEL_UP,
                {"oldLevel": old_level, "newLevel": user.level},
            )

        return XpResult(
            xp=user.xp,
            level=user.level,
            xp_gained=amount,
            reason=reason,
            leveled_up=leveled_up,
        )

    async def on_achievement_unlocked(self, user_id: UUID, code: str, xp_reward: int) -> Dict[str, Any]:
        """成就解锁后发放奖励 XP"""
        if xp_reward > 0:
            await self.add_xp(user_id, xp_reward, f"ACHIEVEMENT_{code}")
        return {"success": True, "achievement_code": code, "xp_reward": xp_reward}

    async def update_streak(self, user_id: UUID) -> Dict[str, Any]:
        """
        更新连续打卡天数

        - 首次活跃: 1
        - 同一天: 不变
        - 相隔一天: +1
        - 中断: 重置为 1
        """
        user = await self._get_user(user_id)
        now = datetime.now(timezone.utc)
        old_streak = user.streak

        if user.last_active_at is None:
            new_streak = 1
        else:
            gap = (to_local_date(now) - to_local_date(user.last_active_at)).days
            if gap <= 0:
                new_streak = old_streak
            elif gap == 1:
                new_streak = old_streak + 1
            else:
                new_streak = 1

        user.streak = new_streak
        user.last_active_at = now
        await self.db.flush()

        changed = new_streak != old_streak
        if changed:
            await self._raise(
                user_id,
                AchievementTrigger.STREAK_UPDATED,
                {"oldStreak": old_streak, "streak": new_streak},
            )

        return {"streak": new_streak, "streak_changed": changed}

    async def get_level_info(self, user_id: UUID) -> Dict[str, Any]:
        """当前等级进度"""
        user = await self._get_user(user_id)
        current_floor = xp_for_level(user.level)
        next_level_xp = xp_for_level(user.level + 1)
        xp_in_level = user.xp - current_floor

        return {
            "current_level": user.level,
            "current_xp": user.xp,
            "xp_for_next_level": next_level_xp,
            "xp_in_current_level": xp_in_level,
            "xp_needed_for_next_level": next_level_xp - user.xp,
            "progress_percentage": progress_percentage(xp_in_level, next_level_xp - current_floor),
        }
