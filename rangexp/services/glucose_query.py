"""
血糖查询服务

为条件评估提供血糖历史统计：
- 计数（场景、达标、时间范围过滤）
- 今日出现过的场景
- 时间窗口内达标率（TIR）
- 当前连续达标次数
- 今日是否全部达标
- 完美天数
- 某场景的连续记录天数

达标区间固定为 [70, 180] mg/dL
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from rangexp.core.time_windows import local_now, start_of_day, to_local_date, window_start
from rangexp.database.models import GlucoseReading

GLUCOSE_RANGE_LOW = 70
GLUCOSE_RANGE_HIGH = 180

# 连续达标只扫描最近的记录
CONSECUTIVE_SCAN_LIMIT = 1000
# 场景连续天数最多回看一年
CONTEXT_STREAK_MAX_DAYS = 365


def is_in_range(value: float) -> bool:
    return GLUCOSE_RANGE_LOW <= value <= GLUCOSE_RANGE_HIGH


def in_range_clause():
    """达标过滤条件"""
    return GlucoseReading.value.between(GLUCOSE_RANGE_LOW, GLUCOSE_RANGE_HIGH)


def out_of_range_clause():
    """未达标过滤条件"""
    return or_(
        GlucoseReading.value < GLUCOSE_RANGE_LOW,
        GlucoseReading.value > GLUCOSE_RANGE_HIGH,
    )


@dataclass(frozen=True)
class TimeInRange:
    """达标率统计"""
    total_readings: int
    in_range_readings: int
    percentage: int


@dataclass(frozen=True)
class ConsecutiveRun:
    """连续达标统计"""
    current: int
    max: int


# ============================================================
# 纯计算
# ============================================================

def current_in_range_run(values: Iterable[float]) -> ConsecutiveRun:
    """
    连续达标次数

    values 按时间从新到旧排列。current 从最新一条开始计数，
    遇到第一条未达标记录即停止且不再恢复；max 为历史最长连续段
    """
    current = 0
    longest = 0
    run = 0
    counting = True

    for value in values:
        if is_in_range(value):
            run += 1
            if counting:
                current += 1
            longest = max(longest, run)
        else:
            counting = False
            run = 0

    return ConsecutiveRun(current=current, max=longest)


def count_perfect_days(
    readings: Iterable[Tuple[datetime, float]],
    min_readings_per_day: int = 1,
) -> int:
    """完美天数：当天记录数 >= min_readings_per_day 且全部达标"""
    days: dict[date, List[float]] = {}
    for recorded_at, value in readings:
        days.setdefault(to_local_date(recorded_at), []).append(value)

    return sum(
        1
        for values in days.values()
        if len(values) >= min_readings_per_day and all(is_in_range(v) for v in values)
    )


def count_consecutive_days(days: Set[date], today: date) -> int:
    """
    以今天结尾的连续天数

    今天还没有记录时从昨天开始计算，当天尚未结束不算中断
    """
    cursor = today if today in days else today - timedelta(days=1)
    count = 0
    while cursor in days and count < CONTEXT_STREAK_MAX_DAYS:
        count += 1
        cursor -= timedelta(days=1)
    return count


# ============================================================
# 数据库查询
# ============================================================

class GlucoseQueryService:
    """血糖查询服务"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_readings_count(
        self,
        user_id: UUID,
        context: Optional[str] = None,
        in_range: Optional[bool] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> int:
        """记录数，in_range=True 时只统计达标记录"""
        conditions = [GlucoseReading.user_id == user_id]

        if context:
            conditions.append(GlucoseReading.context == context)
        if start_date:
            conditions.append(GlucoseReading.recorded_at >= start_date)
        if end_date:
            conditions.append(GlucoseReading.recorded_at <= end_date)
        if in_range:
            conditions.append(in_range_clause())

        result = await self.db.execute(
            select(func.count(GlucoseReading.id)).where(and_(*conditions))
        )
        return result.scalar_one()

    async def get_today_readings_count(self, user_id: UUID, context: Optional[str] = None) -> int:
        """今日记录数"""
        return await self.get_readings_count(user_id, context=context, start_date=start_of_day())

    async def get_unique_contexts_today(self, user_id: UUID) -> List[str]:
        """今日出现过的场景（去重，不含空值）"""
        result = await self.db.execute(
            select(GlucoseReading.context)
            .where(
                GlucoseReading.user_id == user_id,
                GlucoseReading.recorded_at >= start_of_day(),
                GlucoseReading.context.is_not(None),
            )
            .distinct()
        )
        return [row[0] for row in result.all()]

    async def get_time_in_range(
        self,
        user_id: UUID,
        window: str,
        min_samples: int = 1,
    ) -> TimeInRange:
        """
        时间窗口内达标率

        样本不足时不再统计达标数，百分比为 0
        """
        start = window_start(window)
        total = await self.get_readings_count(user_id, start_date=start)

        if total < min_samples or total == 0:
            return TimeInRange(total_readings=total, in_range_readings=0, percentage=0)

        in_range = await self.get_readings_count(user_id, in_range=True, start_date=start)

        # 整数运算下的四舍五入
        percentage = (in_range * 200 + total) // (total * 2)
        return TimeInRange(total_readings=total, in_range_readings=in_range, percentage=percentage)

    async def get_consecutive_in_range_readings(
        self,
        user_id: UUID,
        limit: int = CONSECUTIVE_SCAN_LIMIT,
    ) -> ConsecutiveRun:
        """最近记录中的连续达标次数"""
        result = await self.db.execute(
            select(GlucoseReading.value)
            .where(GlucoseReading.user_id == user_id)
            .order_by(GlucoseReading.recorded_at.desc(), GlucoseReading.id.desc())
            .limit(limit)
        )
        return current_in_range_run(result.scalars().all())

    async def are_all_today_readings_in_range(self, user_id: UUID, min_readings: int = 1) -> bool:
        """今日记录数达到下限且没有未达标记录"""
        today = start_of_day()
        total = await self.get_readings_count(user_id, start_date=today)
        if total < min_readings:
            return False

        result = await self.db.execute(
            select(func.count(GlucoseReading.id)).where(
                GlucoseReading.user_id == user_id,
                GlucoseReading.recorded_at >= today,
                out_of_range_clause(),
            )
        )
        return result.scalar_one() == 0

    async def get_perfect_days_count(
        self,
        user_id: UUID,
        window: str,
        min_readings_per_day: int = 1,
    ) -> int:
        """时间窗口内的完美天数"""
        result = await self.db.execute(
            select(GlucoseReading.recorded_at, GlucoseReading.value)
            .where(
                GlucoseReading.user_id == user_id,
                GlucoseReading.recorded_at >= window_start(window),
            )
            .order_by(GlucoseReading.recorded_at.asc())
        )
        return count_perfect_days(result.all(), min_readings_per_day)

    async def get_consecutive_days_with_context(
        self,
        user_id: UUID,
        context: str,
        require_in_range: bool = False,
    ) -> int:
        """某场景的连续记录天数（可要求该场景记录达标）"""
        now = local_now()
        conditions = [
            GlucoseReading.user_id == user_id,
            GlucoseReading.context == context,
            GlucoseReading.recorded_at >= start_of_day(now) - timedelta(days=CONTEXT_STREAK_MAX_DAYS),
        ]
        if require_in_range:
            conditions.append(in_range_clause())

        result = await self.db.execute(select(GlucoseReading.recorded_at).where(and_(*conditions)))
        days = {to_local_date(recorded_at) for recorded_at in result.scalars().all()}
        if not days:
            return 0

        return count_consecutive_days(days, now.date())
