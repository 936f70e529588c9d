"""
成就条件解析与结果工具测试
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from rangexp.core.conditions import (
    NOT_MET,
    CountCondition,
    InRangeCondition,
    TimeWindowCondition,
    compare,
    measured,
    parse_condition,
    progress_percentage,
    round_half_up,
)
from rangexp.core.time_windows import EPOCH, window_start


class TestParseCondition:
    """条件解析"""

    def test_parse_camel_case_json(self):
        """存储格式为 camelCase"""
        condition = parse_condition(
            {"type": "time_window", "entity": "glucose_readings", "window": "day",
             "operator": "gte", "value": 4, "uniqueContexts": True}
        )
        assert isinstance(condition, TimeWindowCondition)
        assert condition.unique_contexts is True

    def test_in_range_window_defaults_to_all(self):
        condition = parse_condition({"type": "in_range", "perfectDays": 3})
        assert isinstance(condition, InRangeCondition)
        assert condition.window == "all"

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_condition({"type": "teleport", "value": 1})

    def test_missing_field_rejected(self):
        with pytest.raises(ValidationError):
            parse_condition({"type": "count", "entity": "glucose_readings", "operator": "gte"})

    def test_parsed_model_passes_through(self):
        condition = CountCondition(entity="friends", operator="gte", value=1)
        assert parse_condition(condition) is condition

    def test_to_json_round_trips_aliases(self):
        condition = CountCondition(entity="glucose_readings", operator="gte", value=10, in_range=True)
        assert condition.to_json() == {
            "type": "count",
            "entity": "glucose_readings",
            "operator": "gte",
            "value": 10,
            "inRange": True,
        }


class TestResultHelpers:
    """结果构造"""

    def test_met_aligns_progress_with_target(self):
        result = measured(True, 15, 10)
        assert result.progress == 10
        assert result.target == 10
        assert result.progress_percentage == 100

    def test_percentage_clamped(self):
        assert progress_percentage(15, 10) == 100
        assert progress_percentage(-5, 10) == 0

    def test_zero_target(self):
        assert progress_percentage(3, 0) == 0

    def test_half_up_rounding(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1
        assert progress_percentage(1, 8) == 13  # 12.5

    def test_not_met_has_no_progress(self):
        assert NOT_MET.to_dict() == {
            "met": False,
            "progress": None,
            "target": None,
            "progress_percentage": None,
        }


class TestCompare:
    """比较运算"""

    @pytest.mark.parametrize(
        "value,operator,target,expected",
        [
            (5, "eq", 5, True),
            (5, "gte", 5, True),
            (5, "gt", 5, False),
            (4, "lte", 5, True),
            (5, "lt", 5, False),
            (5, "between", 5, False),
        ],
    )
    def test_operators(self, value, operator, target, expected):
        assert compare(value, operator, target) is expected


class TestWindowStart:
    """时间窗口起点"""

    NOW = datetime(2026, 3, 31, 15, 30, tzinfo=timezone.utc)

    def test_day_is_midnight(self):
        assert window_start("day", self.NOW) == datetime(2026, 3, 31, tzinfo=timezone.utc)

    def test_week_is_rolling(self):
        assert window_start("week", self.NOW) == datetime(2026, 3, 24, 15, 30, tzinfo=timezone.utc)

    def test_month_clamps_to_month_end(self):
        assert window_start("month", self.NOW) == datetime(2026, 2, 28, 15, 30, tzinfo=timezone.utc)

    def test_year(self):
        assert window_start("year", self.NOW) == datetime(2025, 3, 31, 15, 30, tzinfo=timezone.utc)

    def test_all_is_epoch(self):
        assert window_start("all", self.NOW) == EPOCH
