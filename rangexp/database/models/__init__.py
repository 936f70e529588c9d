"""
数据库模型

所有 SQLAlchemy 模型的统一导出
"""

from rangexp.database.models.user import User
from rangexp.database.models.glucose import GlucoseReading, GlucoseContext
from rangexp.database.models.social import (
    Friendship,
    FriendshipStatus,
    ActivityFeed,
    ActivityType,
)
from rangexp.database.models.notification import Notification, NotificationType
from rangexp.database.models.achievement import (
    Achievement,
    UserAchievement,
    AchievementProcessingLog,
    AchievementTier,
    ProcessingStatus,
)

__all__ = [
    # Core
    "User",
    # Glucose
    "GlucoseReading",
    "GlucoseContext",
    # Social
    "Friendship",
    "FriendshipStatus",
    "ActivityFeed",
    "ActivityType",
    "Notification",
    "NotificationType",
    # Achievement
    "Achievement",
    "UserAchievement",
    "AchievementProcessingLog",
    "AchievementTier",
    "ProcessingStatus",
]
