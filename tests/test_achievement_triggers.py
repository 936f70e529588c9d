"""
触发器分类映射测试
"""

from rangexp.core.achievement_triggers import (
    AchievementTrigger,
    categories_for_trigger,
    category_metadata,
)


class TestCategoriesForTrigger:
    """触发器 -> 分类"""

    def test_glucose_logged(self):
        assert categories_for_trigger(AchievementTrigger.GLUCOSE_LOGGED) == [
            "REGISTROS",
            "CONTEXTOS",
            "CONTROL",
            "ESPECIALES",
        ]

    def test_accepts_plain_string(self):
        assert categories_for_trigger("LEVEL_UP") == ["NIVELES"]

    def test_social_triggers(self):
        for trigger in ("FRIEND_ADDED", "SHARE_COMPLETED", "ENCOURAGEMENT_SENT"):
            assert categories_for_trigger(trigger) == ["SOCIAL"]

    def test_unknown_trigger_is_empty(self):
        assert categories_for_trigger("NOT_A_TRIGGER") == []
        assert categories_for_trigger(None) == []

    def test_every_trigger_mapped(self):
        for trigger in AchievementTrigger:
            assert categories_for_trigger(trigger)


def test_category_metadata_order():
    codes = [item["code"] for item in category_metadata()]
    assert codes[0] == "REGISTROS"
    assert len(codes) == 7
    assert all(item["name"] for item in category_metadata())
