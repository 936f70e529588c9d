"""
时间窗口

窗口起点相对于评估时刻滚动计算，不按自然周/月对齐：
- day: 今天零点（配置时区）
- week: 7 天前
- month: 1 个自然月前
- year: 1 年前
- all: 纪元起点
"""

from datetime import date, datetime, time, timezone
from typing import Optional

from dateutil.relativedelta import relativedelta

from rangexp.core.config import settings

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def local_now() -> datetime:
    """当前时间（配置时区，带时区信息）"""
    return datetime.now(settings.tzinfo)


def to_local_date(value: datetime) -> date:
    """把带时区的时间转成配置时区下的日期"""
    return value.astimezone(settings.tzinfo).date()


def start_of_day(now: Optional[datetime] = None) -> datetime:
    """当天零点"""
    now = now or local_now()
    local = now.astimezone(settings.tzinfo)
    return datetime.combine(local.date(), time.min, tzinfo=settings.tzinfo)


def window_start(window: str, now: Optional[datetime] = None) -> datetime:
    """时间窗口起点，未知窗口返回当前时刻"""
    now = now or local_now()

    if window == "day":
        return start_of_day(now)
    if window == "week":
        return now - relativedelta(days=7)
    if window == "month":
        return now - relativedelta(months=1)
    if window == "year":
        return now - relativedelta(years=1)
    if window == "all":
        return EPOCH
    return now
