"""
成就服务

- 按触发器检查并解锁成就
- 按 code 检查并解锁单个成就
- 成就查询（全部、按分类、用户成就及进度）
- 写入内置成就目录
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Union
from uuid import UUID

import structlog

from rangexp.core.achievement_triggers import (
    AchievementTrigger,
    categories_for_trigger,
    category_metadata,
)
from rangexp.core.condition_evaluator import ConditionEvaluator
from rangexp.database.models import Achievement, ActivityType
from rangexp.services.achievement_catalog import ACHIEVEMENT_CATALOG
from rangexp.services.achievement_store import AchievementStore

logger = structlog.get_logger(__name__)


class XpAwarder(Protocol):
    """发放成就 XP"""

    async def on_achievement_unlocked(self, user_id: UUID, code: str, xp_reward: int) -> Any:
        ...


class ActivityPoster(Protocol):
    """发布动态"""

    async def post_activity(
        self,
        sender_id: UUID,
        receiver_id: Optional[UUID],
        activity_type: str,
        data: Dict[str, Any],
    ) -> Any:
        ...


@dataclass
class UnlockRecord:
    """触发器检查中新解锁的成就"""
    code: str
    unlocked: bool
    xp_reward: int

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "unlocked": self.unlocked, "xp_reward": self.xp_reward}


@dataclass
class UnlockOutcome:
    """单个成就检查结果"""
    already_unlocked: bool
    achievement: Optional[Achievement] = None
    xp_reward: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "already_unlocked": self.already_unlocked,
            "achievement": self.achievement.to_dict() if self.achievement else None,
        }
        if self.xp_reward is not None:
            result["xp_reward"] = self.xp_reward
        return result


class AchievementService:
    """成就服务"""

    def __init__(
        self,
        store: AchievementStore,
        evaluator: ConditionEvaluator,
        gamification: XpAwarder,
        social: ActivityPoster,
    ):
        self.store = store
        self.evaluator = evaluator
        self.gamification = gamification
        self.social = social

    # ============================================================
    # 解锁
    # ============================================================

    async def check_achievements_by_trigger(
        self,
        user_id: UUID,
        trigger: Union[AchievementTrigger, str],
        event_data: Optional[Dict[str, Any]] = None,
    ) -> List[UnlockRecord]:
        """
        领域事件发生后检查相关分类的成就

        单个成就评估或解锁失败时回滚该成就的写入并记录日志，不影响其余成就

        Args:
            user_id: 用户 ID
            trigger: 触发器
            event_data: 事件数据

        Returns:
            本次新解锁的成就
        """
        log = logger.bind(user_id=str(user_id), trigger=str(getattr(trigger, "value", trigger)))

        categories = categories_for_trigger(trigger)
        if not categories:
            log.debug("no_categories_for_trigger")
            return []

        achievements = await self.store.list_by_categories(categories)
        unlocked_ids = await self.store.get_unlocked_achievement_ids(user_id)

        unlocked: List[UnlockRecord] = []
        for achievement in achievements:
            if achievement.id in unlocked_ids:
                continue

            code = achievement.code
            xp_reward = achievement.xp_reward
            try:
                # 每个成就一个保存点，失败的语句不会中止整个事务
                async with self.store.savepoint():
                    result = await self.evaluator.evaluate(user_id, achievement.condition, event_data)
                    newly_unlocked = result.met and await self._unlock(user_id, achievement)
            except Exception as e:
                log.error("achievement_check_failed", code=code, error=str(e))
                continue

            if newly_unlocked:
                unlocked.append(UnlockRecord(code=code, unlocked=True, xp_reward=xp_reward))

        if unlocked:
            log.info("achievements_unlocked", codes=[record.code for record in unlocked])
        return unlocked

    async def check_and_unlock_achievement(
        self,
        user_id: UUID,
        code: str,
        event_data: Optional[Dict[str, Any]] = None,
    ) -> UnlockOutcome:
        """
        检查并解锁指定成就

        已解锁时直接返回，不再评估；持久化异常向上抛出
        """
        achievement = await self.store.get_achievement_by_code(code)
        if achievement is None:
            return UnlockOutcome(already_unlocked=False)

        if await self.store.has_unlocked(user_id, achievement.id):
            return UnlockOutcome(already_unlocked=True)

        result = await self.evaluator.evaluate(user_id, achievement.condition, event_data)
        if not result.met:
            return UnlockOutcome(already_unlocked=False)

        if not await self._unlock(user_id, achievement):
            # 并发请求已写入
            return UnlockOutcome(already_unlocked=True)

        return UnlockOutcome(
            already_unlocked=False,
            achievement=achievement,
            xp_reward=achievement.xp_reward,
        )

    async def _unlock(self, user_id: UUID, achievement: Achievement) -> bool:
        """
        解锁流程：写入记录 -> 发放 XP -> 发布动态

        记录已存在时返回 False，后续步骤不执行
        """
        user_achievement = await self.store.create_user_achievement(user_id, achievement.id)
        if user_achievement is None:
            return False

        logger.info(
            "achievement_unlocked",
            user_id=str(user_id),
            code=achievement.code,
            xp_reward=achievement.xp_reward,
        )

        if achievement.xp_reward > 0:
            await self.gamification.on_achievement_unlocked(
                user_id, achievement.code, achievement.xp_reward
            )

        await self.social.post_activity(
            user_id,
            None,
            ActivityType.UNLOCK_ACHIEVEMENT,
            {
                "message": f"🏆 Desbloqueaste: {achievement.name}",
                "achievement": {
                    "code": achievement.code,
                    "name": achievement.name,
                    "tier": achievement.tier,
                    "xpReward": achievement.xp_reward,
                },
            },
        )
        return True

    # ============================================================
    # 查询
    # ============================================================

    async def find_all(self) -> List[Achievement]:
        return await self.store.list_achievements()

    async def find_by_code(self, code: str) -> Optional[Achievement]:
        return await self.store.get_achievement_by_code(code)

    async def find_by_category(self, category: str) -> List[Achievement]:
        return await self.store.list_by_categories([category])

    def get_categories(self) -> List[Dict[str, str]]:
        return category_metadata()

    async def get_user_achievements(self, user_id: UUID) -> Dict[str, Any]:
        """全部成就及用户解锁状态"""
        user_achievements = await self.store.list_user_achievements(user_id)
        all_achievements = await self.store.list_achievements()

        unlocked_at = {ua.achievement_id: ua.unlocked_at for ua in user_achievements}

        achievements = []
        for achievement in all_achievements:
            item = achievement.to_dict()
            item["unlocked"] = achievement.id in unlocked_at
            item["unlocked_at"] = unlocked_at.get(achievement.id)
            achievements.append(item)

        return {
            "achievements": achievements,
            "total_unlocked": len(user_achievements),
            "total_achievements": len(all_achievements),
            "total_xp_from_achievements": sum(ua.achievement.xp_reward for ua in user_achievements),
        }

    async def get_user_achievements_with_progress(self, user_id: UUID) -> Dict[str, Any]:
        """
        用户成就及未解锁成就的进度

        进度计算失败时对应字段为 None
        """
        summary = await self.get_user_achievements(user_id)
        definitions = {a.code: a for a in await self.store.list_achievements()}

        for item in summary["achievements"]:
            item["progress"] = None
            item["target"] = None
            item["progress_percentage"] = None
            if item["unlocked"]:
                continue

            achievement = definitions.get(item["code"])
            if achievement is None:
                continue
            try:
                result = await self.evaluator.evaluate(user_id, achievement.condition)
            except Exception as e:
                logger.warning(
                    "achievement_progress_failed",
                    user_id=str(user_id),
                    code=achievement.code,
                    error=str(e),
                )
                continue
            item["progress"] = result.progress
            item["target"] = result.target
            item["progress_percentage"] = result.progress_percentage

        return summary

    # ============================================================
    # 种子数据
    # ============================================================

    async def seed_achievements(self) -> Dict[str, int]:
        """按 code 写入内置成就目录"""
        for data in ACHIEVEMENT_CATALOG:
            await self.store.upsert_achievement(dict(data))

        logger.info("achievements_seeded", count=len(ACHIEVEMENT_CATALOG))
        return {"seeded": len(ACHIEVEMENT_CATALOG)}
