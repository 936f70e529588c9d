"""
成就服务测试

覆盖按触发器解锁、按 code 解锁、查询和种子数据
"""

from unittest.mock import AsyncMock

import pytest

from rangexp.core.achievement_triggers import AchievementTrigger
from rangexp.core.condition_evaluator import ConditionEvaluator
from rangexp.core.conditions import (
    ConditionResult,
    CountCondition,
    UserAttributeCondition,
    parse_condition,
)
from rangexp.services.achievement_catalog import ACHIEVEMENT_CATALOG
from rangexp.services.achievement_service import AchievementService, UnlockOutcome
from rangexp.services.gamification_service import GamificationService
from rangexp.services.social_service import SocialService
from tests.fakes import make_achievement

FIRST_LOG = CountCondition(entity="glucose_readings", operator="gte", value=1)


@pytest.fixture
def gamification():
    return AsyncMock(spec=GamificationService)


@pytest.fixture
def social():
    return AsyncMock(spec=SocialService)


@pytest.fixture
def service(store, glucose, gamification, social):
    return AchievementService(store, ConditionEvaluator(store, glucose), gamification, social)


class TestCheckAndUnlockAchievement:
    """按 code 解锁"""

    @pytest.mark.asyncio
    async def test_first_log_end_to_end(self, service, store, glucose, gamification, social, user):
        """首次记录：解锁、发 50 XP、发布动态；再次检查直接返回已解锁"""
        achievement = store.add_achievement(
            make_achievement("FIRST_LOG", FIRST_LOG, xp_reward=50, name="Primer Registro")
        )
        glucose.get_readings_count.return_value = 1

        outcome = await service.check_and_unlock_achievement(user.id, "FIRST_LOG")

        assert outcome.already_unlocked is False
        assert outcome.achievement is achievement
        assert outcome.xp_reward == 50
        assert await store.has_unlocked(user.id, achievement.id)
        gamification.on_achievement_unlocked.assert_awaited_once_with(user.id, "FIRST_LOG", 50)

        social.post_activity.assert_awaited_once()
        sender, receiver, activity_type, data = social.post_activity.await_args.args
        assert sender == user.id
        assert receiver is None
        assert activity_type == "UNLOCK_ACHIEVEMENT"
        assert data["message"] == "🏆 Desbloqueaste: Primer Registro"
        assert data["achievement"] == {
            "code": "FIRST_LOG",
            "name": "Primer Registro",
            "tier": "bronze",
            "xpReward": 50,
        }

        glucose.get_readings_count.reset_mock()
        again = await service.check_and_unlock_achievement(user.id, "FIRST_LOG")
        assert again.already_unlocked is True
        assert again.achievement is None
        glucose.get_readings_count.assert_not_awaited()
        assert len(store.unlocks) == 1

    @pytest.mark.asyncio
    async def test_unknown_code(self, service, user):
        outcome = await service.check_and_unlock_achievement(user.id, "NOPE")
        assert outcome.already_unlocked is False
        assert outcome.achievement is None

    @pytest.mark.asyncio
    async def test_condition_not_met(self, service, store, gamification, user):
        store.add_achievement(make_achievement("FIRST_LOG", FIRST_LOG))
        outcome = await service.check_and_unlock_achievement(user.id, "FIRST_LOG")
        assert outcome.already_unlocked is False
        assert outcome.achievement is None
        assert not store.unlocks
        gamification.on_achievement_unlocked.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_zero_xp_skips_award(self, service, store, glucose, gamification, social, user):
        store.add_achievement(make_achievement("FIRST_LOG", FIRST_LOG, xp_reward=0))
        glucose.get_readings_count.return_value = 1
        outcome = await service.check_and_unlock_achievement(user.id, "FIRST_LOG")
        assert outcome.achievement is not None
        gamification.on_achievement_unlocked.assert_not_awaited()
        social.post_activity.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_concurrent_insert_is_already_unlocked(self, store, glucose, gamification, social, user):
        """唯一索引冲突视为已解锁，不发 XP"""
        store.add_achievement(make_achievement("FIRST_LOG", FIRST_LOG))
        glucose.get_readings_count.return_value = 1
        store.create_user_achievement = AsyncMock(return_value=None)
        service = AchievementService(store, ConditionEvaluator(store, glucose), gamification, social)

        outcome = await service.check_and_unlock_achievement(user.id, "FIRST_LOG")

        assert outcome.already_unlocked is True
        gamification.on_achievement_unlocked.assert_not_awaited()
        social.post_activity.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_persistence_error_propagates(self, store, glucose, gamification, social, user):
        store.add_achievement(make_achievement("FIRST_LOG", FIRST_LOG))
        glucose.get_readings_count.return_value = 1
        social.post_activity.side_effect = RuntimeError("db down")
        service = AchievementService(store, ConditionEvaluator(store, glucose), gamification, social)

        with pytest.raises(RuntimeError):
            await service.check_and_unlock_achievement(user.id, "FIRST_LOG")


class TestCheckAchievementsByTrigger:
    """按触发器解锁"""

    @pytest.mark.asyncio
    async def test_only_trigger_categories_checked(self, service, store, glucose, user):
        store.add_achievement(make_achievement("FIRST_LOG", FIRST_LOG, category="REGISTROS"))
        store.add_achievement(
            make_achievement(
                "FIRST_FRIEND",
                CountCondition(entity="friends", operator="gte", value=1),
                category="SOCIAL",
            )
        )
        store.friends[user.id] = 3
        glucose.get_readings_count.return_value = 1

        records = await service.check_achievements_by_trigger(user.id, AchievementTrigger.GLUCOSE_LOGGED)

        assert [record.to_dict() for record in records] == [
            {"code": "FIRST_LOG", "unlocked": True, "xp_reward": 50}
        ]

    @pytest.mark.asyncio
    async def test_unknown_trigger(self, service, user):
        assert await service.check_achievements_by_trigger(user.id, "UNKNOWN_TRIGGER") == []

    @pytest.mark.asyncio
    async def test_skips_unlocked(self, service, store, glucose, user):
        achievement = store.add_achievement(make_achievement("FIRST_LOG", FIRST_LOG))
        await store.create_user_achievement(user.id, achievement.id)
        glucose.get_readings_count.return_value = 1

        assert await service.check_achievements_by_trigger(user.id, "GLUCOSE_LOGGED") == []
        glucose.get_readings_count.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_isolated_per_achievement(self, store, gamification, social, user):
        first = store.add_achievement(make_achievement("A", FIRST_LOG))
        store.add_achievement(make_achievement("B", FIRST_LOG))
        evaluator = AsyncMock(spec=ConditionEvaluator)

        async def evaluate(user_id, condition, event_data=None):
            if evaluate.calls == 0:
                evaluate.calls += 1
                raise RuntimeError("boom")
            return ConditionResult(met=True, progress=1, target=1, progress_percentage=100)

        evaluate.calls = 0
        evaluator.evaluate.side_effect = evaluate
        service = AchievementService(store, evaluator, gamification, social)

        records = await service.check_achievements_by_trigger(user.id, "GLUCOSE_LOGGED")

        assert [record.code for record in records] == ["B"]
        assert not await store.has_unlocked(user.id, first.id)

    @pytest.mark.asyncio
    async def test_failed_unlock_rolled_back_and_next_unlocks(self, service, store, glucose, gamification, user):
        """发放 XP 失败时撤销该成就的解锁记录，后续成就照常解锁"""
        first = store.add_achievement(make_achievement("A", FIRST_LOG, xp_reward=50))
        second = store.add_achievement(make_achievement("B", FIRST_LOG, xp_reward=50))
        glucose.get_readings_count.return_value = 1
        gamification.on_achievement_unlocked.side_effect = [RuntimeError("xp failed"), None]

        records = await service.check_achievements_by_trigger(user.id, "GLUCOSE_LOGGED")

        assert [record.code for record in records] == ["B"]
        assert not await store.has_unlocked(user.id, first.id)
        assert await store.has_unlocked(user.id, second.id)
        assert store.savepoint_rollbacks == 1

    @pytest.mark.asyncio
    async def test_event_payload_forwarded(self, service, store, user):
        store.add_achievement(
            make_achievement(
                "COMEBACK",
                {"type": "event", "eventName": "streak_recovered"},
                category="ESPECIALES",
            )
        )
        records = await service.check_achievements_by_trigger(
            user.id, AchievementTrigger.STREAK_RECOVERED, {"eventName": "streak_recovered"}
        )
        assert [record.code for record in records] == ["COMEBACK"]


class TestQueries:
    """查询"""

    @pytest.mark.asyncio
    async def test_user_achievements_summary(self, service, store, user):
        unlocked = store.add_achievement(make_achievement("FIRST_LOG", FIRST_LOG, xp_reward=50))
        store.add_achievement(
            make_achievement("LEVEL_5", UserAttributeCondition(attribute="level", operator="gte", value=5))
        )
        await store.create_user_achievement(user.id, unlocked.id)

        summary = await service.get_user_achievements(user.id)

        assert summary["total_unlocked"] == 1
        assert summary["total_achievements"] == 2
        assert summary["total_xp_from_achievements"] == 50
        flags = {item["code"]: item["unlocked"] for item in summary["achievements"]}
        assert flags == {"FIRST_LOG": True, "LEVEL_5": False}

    @pytest.mark.asyncio
    async def test_progress_for_locked(self, service, store):
        user = store.add_user(level=2)
        store.add_achievement(
            make_achievement("LEVEL_5", UserAttributeCondition(attribute="level", operator="gte", value=5))
        )

        summary = await service.get_user_achievements_with_progress(user.id)

        item = summary["achievements"][0]
        assert item["progress"] == 2
        assert item["target"] == 5
        assert item["progress_percentage"] == 40

    @pytest.mark.asyncio
    async def test_progress_error_swallowed(self, store, gamification, social, user):
        store.add_achievement(make_achievement("FIRST_LOG", FIRST_LOG))
        evaluator = AsyncMock(spec=ConditionEvaluator)
        evaluator.evaluate.side_effect = RuntimeError("boom")
        service = AchievementService(store, evaluator, gamification, social)

        summary = await service.get_user_achievements_with_progress(user.id)

        assert summary["achievements"][0]["progress"] is None
        assert summary["achievements"][0]["progress_percentage"] is None

    @pytest.mark.asyncio
    async def test_find_by_category(self, service, store):
        store.add_achievement(make_achievement("FIRST_LOG", FIRST_LOG, category="REGISTROS"))
        store.add_achievement(make_achievement("FIRST_FRIEND", FIRST_LOG, category="SOCIAL"))
        found = await service.find_by_category("SOCIAL")
        assert [a.code for a in found] == ["FIRST_FRIEND"]

    def test_categories(self, service):
        assert service.get_categories()[0]["code"] == "REGISTROS"


class TestSeed:
    """种子数据"""

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, service, store):
        first = await service.seed_achievements()
        second = await service.seed_achievements()
        assert first == {"seeded": len(ACHIEVEMENT_CATALOG)}
        assert second == first
        assert len(store.achievements) == len(ACHIEVEMENT_CATALOG)

    def test_catalog_conditions_are_valid(self):
        """目录中的条件都能被评估器解析"""
        for entry in ACHIEVEMENT_CATALOG:
            parse_condition(entry["condition"])


def test_unlock_outcome_to_dict():
    assert UnlockOutcome(already_unlocked=True).to_dict() == {
        "already_unlocked": True,
        "achievement": None,
    }
