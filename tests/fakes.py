"""
测试用内存实现
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID, uuid4

from rangexp.core.conditions import ConditionModel
from rangexp.database.models import Achievement, ProcessingStatus


def make_achievement(
    code: str,
    condition: Any,
    category: str = "REGISTROS",
    xp_reward: int = 50,
    name: Optional[str] = None,
    tier: str = "bronze",
) -> Achievement:
    """构造未持久化的成就定义"""
    if isinstance(condition, ConditionModel):
        condition = condition.to_json()
    return Achievement(
        id=uuid4(),
        code=code,
        name=name or code.title(),
        description="",
        category=category,
        tier=tier,
        xp_reward=xp_reward,
        condition=condition,
    )


def make_user(
    user_id: Optional[UUID] = None,
    created_at: Optional[datetime] = None,
    **fields: Any,
) -> SimpleNamespace:
    """构造用户"""
    data = {
        "id": user_id or uuid4(),
        "first_name": "Ana",
        "xp": 0,
        "level": 1,
        "streak": 0,
        "is_premium": False,
        "last_active_at": None,
        "created_at": created_at or datetime(2024, 6, 1, tzinfo=timezone.utc),
    }
    data.update(fields)
    return SimpleNamespace(**data)


class FakeAchievementStore:
    """内存版成就存储，接口与 AchievementStore 一致"""

    def __init__(self):
        self.achievements: Dict[UUID, Achievement] = {}
        self.users: Dict[UUID, SimpleNamespace] = {}
        self.unlocks: Dict[tuple, datetime] = {}
        self.friends: Dict[UUID, int] = {}
        self.activities: Dict[tuple, int] = {}
        self.notifications: List[Dict[str, Any]] = []
        self.logs: List[SimpleNamespace] = []
        self.commits = 0
        self.rollbacks = 0
        self.savepoint_rollbacks = 0

    # 测试数据
    def add_achievement(self, achievement: Achievement) -> Achievement:
        self.achievements[achievement.id] = achievement
        return achievement

    def add_user(self, user: Optional[SimpleNamespace] = None, **fields: Any) -> SimpleNamespace:
        user = user or make_user(**fields)
        self.users[user.id] = user
        return user

    def add_users(self, count: int) -> List[SimpleNamespace]:
        return [self.add_user() for _ in range(count)]

    # 事务
    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    @asynccontextmanager
    async def savepoint(self):
        """块内异常时撤销块内写入的解锁记录"""
        snapshot = dict(self.unlocks)
        try:
            yield
        except Exception:
            self.unlocks.clear()
            self.unlocks.update(snapshot)
            self.savepoint_rollbacks += 1
            raise

    # 成就定义
    async def list_achievements(self) -> List[Achievement]:
        return list(self.achievements.values())

    async def get_achievement(self, achievement_id: UUID) -> Optional[Achievement]:
        return self.achievements.get(achievement_id)

    async def get_achievement_by_code(self, code: str) -> Optional[Achievement]:
        for achievement in self.achievements.values():
            if achievement.code == code:
                return achievement
        return None

    async def list_by_categories(self, categories: Sequence[str]) -> List[Achievement]:
        return [a for a in self.achievements.values() if a.category in categories]

    async def upsert_achievement(self, data: Dict[str, Any]) -> Achievement:
        achievement = await self.get_achievement_by_code(data["code"])
        if achievement is None:
            achievement = Achievement(id=uuid4(), **data)
            self.achievements[achievement.id] = achievement
        else:
            for key, value in data.items():
                setattr(achievement, key, value)
        return achievement

    # 解锁记录
    async def get_unlocked_achievement_ids(self, user_id: UUID) -> set:
        return {achievement_id for (uid, achievement_id) in self.unlocks if uid == user_id}

    async def has_unlocked(self, user_id: UUID, achievement_id: UUID) -> bool:
        return (user_id, achievement_id) in self.unlocks

    async def list_user_achievements(self, user_id: UUID) -> List[SimpleNamespace]:
        return [
            SimpleNamespace(
                user_id=uid,
                achievement_id=achievement_id,
                unlocked_at=unlocked_at,
                achievement=self.achievements[achievement_id],
            )
            for (uid, achievement_id), unlocked_at in self.unlocks.items()
            if uid == user_id
        ]

    async def create_user_achievement(self, user_id: UUID, achievement_id: UUID):
        key = (user_id, achievement_id)
        if key in self.unlocks:
            return None
        self.unlocks[key] = datetime.now(timezone.utc)
        return SimpleNamespace(user_id=user_id, achievement_id=achievement_id)

    # 用户
    async def get_user(self, user_id: UUID) -> Optional[SimpleNamespace]:
        return self.users.get(user_id)

    async def get_user_position(self, user: SimpleNamespace) -> int:
        return 1 + sum(
            1
            for other in self.users.values()
            if (other.created_at, other.id) < (user.created_at, user.id)
        )

    async def count_users(self) -> int:
        return len(self.users)

    async def list_user_ids_after(self, cursor: Optional[UUID], limit: int) -> List[UUID]:
        ids = sorted(self.users)
        if cursor is not None:
            ids = [i for i in ids if i > cursor]
        return ids[:limit]

    async def increment_user_xp(self, user_id: UUID, amount: int) -> None:
        self.users[user_id].xp += amount

    # 社交计数
    async def count_accepted_friends(self, user_id: UUID, since=None) -> int:
        return self.friends.get(user_id, 0)

    async def count_activities(self, user_id: UUID, activity_type: str, since=None) -> int:
        return self.activities.get((user_id, activity_type), 0)

    # 通知
    async def create_notification(self, user_id, notification_type, title, message, data=None):
        notification = {
            "user_id": user_id,
            "type": notification_type,
            "title": title,
            "message": message,
            "data": data or {},
        }
        self.notifications.append(notification)
        return notification

    # 回溯处理日志
    async def get_active_processing_log(self, achievement_id: UUID):
        for log in reversed(self.logs):
            if log.achievement_id == achievement_id and log.status in ProcessingStatus.ACTIVE:
                return log
        return None

    async def create_processing_log(self, achievement_id: UUID):
        log = SimpleNamespace(
            id=uuid4(),
            achievement_id=achievement_id,
            status=ProcessingStatus.PENDING,
            total_users=0,
            processed_users=0,
            awarded_count=0,
            started_at=None,
            completed_at=None,
            error_message=None,
            history=[],
        )
        self.logs.append(log)
        return log

    async def update_processing_log(self, log_id: UUID, **fields: Any) -> None:
        log = next(log for log in self.logs if log.id == log_id)
        for key, value in fields.items():
            setattr(log, key, value)
        log.history.append(dict(fields))

    async def latest_processing_log(self, achievement_id: UUID):
        for log in reversed(self.logs):
            if log.achievement_id == achievement_id:
                return log
        return None

    async def list_achievements_without_completed_log(self) -> List[Achievement]:
        completed = {log.achievement_id for log in self.logs if log.status == ProcessingStatus.COMPLETED}
        return [a for a in self.achievements.values() if a.id not in completed]

    async def list_achievements_with_latest_log(self):
        return [(a, await self.latest_processing_log(a.id)) for a in self.achievements.values()]
