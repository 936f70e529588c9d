"""
服务容器

按数据库会话组装成就核心及其协作服务。
成就服务与游戏化服务互相调用（解锁发 XP，升级再触发成就检查），
通过注入 raise_trigger 回调连接
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rangexp.core.achievement_triggers import AchievementTrigger
from rangexp.core.condition_evaluator import ConditionEvaluator
from rangexp.services.achievement_service import AchievementService, UnlockRecord
from rangexp.services.achievement_store import AchievementStore
from rangexp.services.gamification_service import GamificationService
from rangexp.services.glucose_query import GlucoseQueryService
from rangexp.services.retroactive_processor import RetroactiveProcessor
from rangexp.services.social_service import SocialService

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    """单个会话内的服务集合"""

    db: AsyncSession
    store: AchievementStore
    glucose: GlucoseQueryService
    evaluator: ConditionEvaluator
    gamification: GamificationService
    social: SocialService
    achievements: AchievementService
    retroactive: RetroactiveProcessor


def build_container(db: AsyncSession, batch_size: Optional[int] = None) -> ServiceContainer:
    """组装服务"""
    store = AchievementStore(db)
    glucose = GlucoseQueryService(db)
    evaluator = ConditionEvaluator(store, glucose)
    social = SocialService(db)

    achievements: Optional[AchievementService] = None

    async def raise_trigger(
        user_id: UUID,
        trigger: AchievementTrigger,
        event_data: Optional[Dict[str, Any]] = None,
    ) -> List[UnlockRecord]:
        logger.debug("achievement_trigger_raised", user_id=str(user_id), trigger=trigger.value)
        return await achievements.check_achievements_by_trigger(user_id, trigger, event_data)

    gamification = GamificationService(db, raise_trigger=raise_trigger)
    achievements = AchievementService(store, evaluator, gamification, social)

    return ServiceContainer(
        db=db,
        store=store,
        glucose=glucose,
        evaluator=evaluator,
        gamification=gamification,
        social=social,
        achievements=achievements,
        retroactive=RetroactiveProcessor(store, evaluator, batch_size=batch_size),
    )
