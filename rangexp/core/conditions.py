"""
成就解锁条件

条件以带 type 标签的 JSON 存储在 achievements.condition 中，
字段名为 camelCase（与移动端、种子数据一致）。

支持 8 种条件：
- count: 实体计数
- user_attribute: 用户属性（连续天数、等级、XP、会员）
- time_window: 时间窗口内计数
- in_range: 血糖达标（连续、全天、完美天数）
- percentage: 百分比指标（TIR）
- date: 日期类
- event: 事件匹配
- consecutive: 连续天数
"""

import math
from dataclasses import dataclass
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

CountEntity = Literal["glucose_readings", "friends", "shares", "encouragements"]
UserAttribute = Literal["streak", "level", "xp", "isPremium"]
TimeWindow = Literal["day", "week", "month", "year", "all"]
GlucoseContextName = Literal["FASTING", "BEFORE_MEAL", "AFTER_MEAL", "BEDTIME", "OTHER"]
DateCheck = Literal["month_day", "before", "user_number"]
Number = Union[int, float]


class ConditionModel(BaseModel):
    """条件基类"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json(self) -> Dict[str, Any]:
        """导出为存储格式（camelCase，省略空字段）"""
        return self.model_dump(by_alias=True, exclude_none=True)


class CountCondition(ConditionModel):
    """实体计数"""
    type: Literal["count"] = "count"
    entity: CountEntity
    operator: str
    value: int
    context: Optional[GlucoseContextName] = None
    in_range: Optional[bool] = None


class UserAttributeCondition(ConditionModel):
    """用户属性"""
    type: Literal["user_attribute"] = "user_attribute"
    attribute: UserAttribute
    operator: str
    value: Union[bool, int, float]


class TimeWindowCondition(ConditionModel):
    """时间窗口内计数"""
    type: Literal["time_window"] = "time_window"
    entity: CountEntity
    window: TimeWindow
    operator: str
    value: int
    context: Optional[GlucoseContextName] = None
    unique_contexts: Optional[bool] = None


class InRangeCondition(ConditionModel):
    """血糖达标（三种子模式，按 consecutive > allInDay > perfectDays 优先）"""
    type: Literal["in_range"] = "in_range"
    consecutive: Optional[int] = None
    all_in_day: Optional[bool] = None
    perfect_days: Optional[int] = None
    min_readings_per_day: Optional[int] = None
    window: TimeWindow = "all"


class PercentageCondition(ConditionModel):
    """百分比指标，目前只有 time_in_range"""
    type: Literal["percentage"] = "percentage"
    metric: Literal["time_in_range"]
    window: TimeWindow
    operator: str
    value: Number
    min_samples: Optional[int] = None


class DateCondition(ConditionModel):
    """
    日期类

    value: "MM-DD"（month_day）、ISO 日期（before）、整数（user_number）
    """
    type: Literal["date"] = "date"
    check: DateCheck
    value: Union[int, str]


class EventCondition(ConditionModel):
    """事件匹配"""
    type: Literal["event"] = "event"
    event_name: str
    requires_data: Optional[Dict[str, Any]] = None


class ConsecutiveCondition(ConditionModel):
    """连续天数"""
    type: Literal["consecutive"] = "consecutive"
    days: int
    require_context: Optional[GlucoseContextName] = None
    require_in_range: Optional[bool] = None


AchievementCondition = Annotated[
    Union[
        CountCondition,
        UserAttributeCondition,
        TimeWindowCondition,
        InRangeCondition,
        PercentageCondition,
        DateCondition,
        EventCondition,
        ConsecutiveCondition,
    ],
    Field(discriminator="type"),
]

_condition_adapter: TypeAdapter = TypeAdapter(AchievementCondition)


def parse_condition(raw: Any) -> AchievementCondition:
    """
    解析条件

    Raises:
        pydantic.ValidationError: 未知 type 或字段不合法
    """
    if isinstance(raw, ConditionModel):
        return raw
    return _condition_adapter.validate_python(raw)


# ============================================================
# 评估结果
# ============================================================

@dataclass(frozen=True)
class ConditionResult:
    """条件评估结果"""
    met: bool
    progress: Optional[Number] = None
    target: Optional[Number] = None
    progress_percentage: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "met": self.met,
            "progress": self.progress,
            "target": self.target,
            "progress_percentage": self.progress_percentage,
        }


NOT_MET = ConditionResult(met=False)


def round_half_up(value: float) -> int:
    """四舍五入（不用 round() 的银行家舍入）"""
    return int(math.floor(value + 0.5))


def progress_percentage(progress: Number, target: Number) -> int:
    """进度百分比，限制在 [0, 100]"""
    if target <= 0:
        return 0
    return max(0, min(round_half_up(progress / target * 100), 100))


def measured(met: bool, progress: Number, target: Number) -> ConditionResult:
    """
    构造带进度的结果

    已满足时 progress 对齐 target，百分比为 100
    """
    if met:
        return ConditionResult(met=True, progress=target, target=target, progress_percentage=100)
    return ConditionResult(
        met=False,
        progress=progress,
        target=target,
        progress_percentage=progress_percentage(progress, target),
    )


def compare(value: Number, operator: str, target: Number) -> bool:
    """比较运算，未知运算符返回 False"""
    if operator == "eq":
        return value == target
    if operator == "gte":
        return value >= target
    if operator == "gt":
        return value > target
    if operator == "lte":
        return value <= target
    if operator == "lt":
        return value < target
    return False
