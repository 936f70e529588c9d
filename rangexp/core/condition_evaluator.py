"""
成就条件评估器

evaluate(user_id, condition, event_data) -> ConditionResult

- 条件不合法（未知 type、字段校验失败）时按未满足处理，不抛异常
- 已满足且有目标值时，progress 对齐 target，百分比为 100
- 评估器本身无状态，每次调用独立
"""

from datetime import date, datetime, time
from typing import Any, Dict, Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from rangexp.core.conditions import (
    NOT_MET,
    AchievementCondition,
    ConditionModel,
    ConditionResult,
    ConsecutiveCondition,
    CountCondition,
    DateCondition,
    EventCondition,
    InRangeCondition,
    PercentageCondition,
    TimeWindowCondition,
    UserAttributeCondition,
    compare,
    measured,
    parse_condition,
)
from rangexp.core.config import settings
from rangexp.core.time_windows import EPOCH, local_now, window_start
from rangexp.database.models import ActivityType
from rangexp.services.achievement_store import AchievementStore
from rangexp.services.glucose_query import GlucoseQueryService

logger = structlog.get_logger(__name__)

BINARY_MET = ConditionResult(met=True, progress=1, target=1, progress_percentage=100)
BINARY_NOT_MET = ConditionResult(met=False, progress=0, target=1, progress_percentage=0)


def binary(met: bool) -> ConditionResult:
    """是/否型条件的结果"""
    return BINARY_MET if met else BINARY_NOT_MET


def parse_month_day(value: Any) -> Optional[tuple[int, int]]:
    """解析 "MM-DD"，格式错误返回 None"""
    if not isinstance(value, str):
        return None
    parts = value.split("-")
    if len(parts) != 2:
        return None
    try:
        month, day = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    return month, day


def parse_cutoff(value: Any) -> Optional[datetime]:
    """解析 ISO 日期 / 时间，无时区时按配置时区处理"""
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        try:
            parsed = datetime.combine(date.fromisoformat(value), time.min)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=settings.tzinfo)
    return parsed


class ConditionEvaluator:
    """成就条件评估器"""

    def __init__(self, store: AchievementStore, glucose: GlucoseQueryService):
        self.store = store
        self.glucose = glucose

    async def evaluate(
        self,
        user_id: UUID,
        condition: Union[AchievementCondition, Dict[str, Any], None],
        event_data: Optional[Dict[str, Any]] = None,
    ) -> ConditionResult:
        """
        评估用户是否满足条件

        Args:
            user_id: 用户 ID
            condition: 已解析的条件或存储中的原始 JSON
            event_data: 触发事件的数据（事件型条件使用）

        Returns:
            ConditionResult
        """
        try:
            parsed = parse_condition(condition)
        except ValidationError as e:
            logger.warning(
                "invalid_achievement_condition",
                user_id=str(user_id),
                condition=condition,
                errors=e.error_count(),
            )
            return NOT_MET

        if isinstance(parsed, CountCondition):
            return await self._evaluate_count(user_id, parsed)
        if isinstance(parsed, UserAttributeCondition):
            return await self._evaluate_user_attribute(user_id, parsed)
        if isinstance(parsed, TimeWindowCondition):
            return await self._evaluate_time_window(user_id, parsed)
        if isinstance(parsed, InRangeCondition):
            return await self._evaluate_in_range(user_id, parsed)
        if isinstance(parsed, PercentageCondition):
            return await self._evaluate_percentage(user_id, parsed)
        if isinstance(parsed, DateCondition):
            return await self._evaluate_date(user_id, parsed)
        if isinstance(parsed, EventCondition):
            return self._evaluate_event(parsed, event_data)
        if isinstance(parsed, ConsecutiveCondition):
            return await self._evaluate_consecutive(user_id, parsed)
        return NOT_MET

    async def _count_entity(
        self,
        user_id: UUID,
        entity: str,
        context: Optional[str] = None,
        in_range: Optional[bool] = None,
        since: Optional[datetime] = None,
    ) -> int:
        """按实体计数，since 为空时不限时间"""
        if entity == "glucose_readings":
            return await self.glucose.get_readings_count(
                user_id, context=context, in_range=in_range, start_date=since
            )
        if entity == "friends":
            return await self.store.count_accepted_friends(user_id, since=since)
        if entity == "shares":
            return await self.store.count_activities(user_id, ActivityType.SHARE, since=since)
        if entity == "encouragements":
            return await self.store.count_activities(
                user_id, ActivityType.ENCOURAGEMENT, since=since
            )
        return 0

    async def _evaluate_count(self, user_id: UUID, condition: CountCondition) -> ConditionResult:
        count = await self._count_entity(
            user_id, condition.entity, context=condition.context, in_range=condition.in_range
        )
        return measured(compare(count, condition.operator, condition.value), count, condition.value)

    async def _evaluate_user_attribute(
        self,
        user_id: UUID,
        condition: UserAttributeCondition,
    ) -> ConditionResult:
        user = await self.store.get_user(user_id)
        if user is None:
            return NOT_MET

        if condition.attribute == "isPremium":
            # 布尔属性只比较相等
            return binary(user.is_premium == condition.value)

        value = {"streak": user.streak, "level": user.level, "xp": user.xp}[condition.attribute]
        if isinstance(condition.value, bool):
            return NOT_MET
        return measured(compare(value, condition.operator, condition.value), value, condition.value)

    async def _evaluate_time_window(
        self,
        user_id: UUID,
        condition: TimeWindowCondition,
    ) -> ConditionResult:
        if condition.unique_contexts and condition.entity == "glucose_readings":
            count = len(await self.glucose.get_unique_contexts_today(user_id))
        else:
            since = window_start(condition.window)
            count = await self._count_entity(
                user_id,
                condition.entity,
                context=condition.context,
                since=None if since == EPOCH else since,
            )
        return measured(compare(count, condition.operator, condition.value), count, condition.value)

    async def _evaluate_in_range(self, user_id: UUID, condition: InRangeCondition) -> ConditionResult:
        min_per_day = condition.min_readings_per_day or 1

        if condition.consecutive:
            run = await self.glucose.get_consecutive_in_range_readings(user_id)
            return measured(run.current >= condition.consecutive, run.current, condition.consecutive)

        if condition.all_in_day:
            return binary(await self.glucose.are_all_today_readings_in_range(user_id, min_per_day))

        if condition.perfect_days:
            days = await self.glucose.get_perfect_days_count(user_id, condition.window, min_per_day)
            return measured(days >= condition.perfect_days, days, condition.perfect_days)

        return NOT_MET

    async def _evaluate_percentage(
        self,
        user_id: UUID,
        condition: PercentageCondition,
    ) -> ConditionResult:
        min_samples = condition.min_samples or 1
        tir = await self.glucose.get_time_in_range(user_id, condition.window, min_samples)

        if tir.total_readings < min_samples:
            return ConditionResult(
                met=False, progress=0, target=condition.value, progress_percentage=0
            )

        met = compare(tir.percentage, condition.operator, condition.value)
        return measured(met, tir.percentage, condition.value)

    async def _evaluate_date(self, user_id: UUID, condition: DateCondition) -> ConditionResult:
        if condition.check == "month_day":
            month_day = parse_month_day(condition.value)
            if month_day is None:
                return NOT_MET
            today = local_now()
            if (today.month, today.day) != month_day:
                return BINARY_NOT_MET
            # 当天还需要有记录
            logged = await self.glucose.get_today_readings_count(user_id)
            return binary(logged > 0)

        user = await self.store.get_user(user_id)

        if condition.check == "before":
            cutoff = parse_cutoff(condition.value)
            if cutoff is None:
                return NOT_MET
            return binary(user is not None and user.created_at < cutoff)

        if condition.check == "user_number":
            if user is None or isinstance(condition.value, str):
                return NOT_MET
            position = await self.store.get_user_position(user)
            return binary(position <= condition.value)

        return NOT_MET

    def _evaluate_event(
        self,
        condition: EventCondition,
        event_data: Optional[Dict[str, Any]],
    ) -> ConditionResult:
        if not event_data or event_data.get("eventName") != condition.event_name:
            return NOT_MET

        for key, value in (condition.requires_data or {}).items():
            if key not in event_data or event_data[key] != value:
                return NOT_MET

        return BINARY_MET

    async def _evaluate_consecutive(
        self,
        user_id: UUID,
        condition: ConsecutiveCondition,
    ) -> ConditionResult:
        if condition.require_context:
            days = await self.glucose.get_consecutive_days_with_context(
                user_id, condition.require_context, bool(condition.require_in_range)
            )
        else:
            user = await self.store.get_user(user_id)
            days = user.streak if user else 0

        return measured(days >= condition.days, days, condition.days)
