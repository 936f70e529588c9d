"""
业务异常

协作服务（游戏化、社交）在找不到实体时抛出，
成就核心按"未满足 / 空操作"处理
"""

from typing import Any, Dict, Optional


class RangeXpError(Exception):
    """业务异常基类"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class UserNotFoundError(RangeXpError):
    """用户不存在"""

    def __init__(self, user_id: str):
        super().__init__("User not found", {"user_id": user_id})
        self.user_id = user_id


class AchievementNotFoundError(RangeXpError):
    """成就不存在"""

    def __init__(self, achievement_ref: str):
        super().__init__("Achievement not found", {"achievement": achievement_ref})
        self.achievement_ref = achievement_ref
