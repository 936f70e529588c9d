"""
社交服务（动态流）

好友申请、分享、鼓励等流程由社交模块负责，这里只保留成就核心用到的发布动态
"""

from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rangexp.core.exceptions import UserNotFoundError
from rangexp.database.models import ActivityFeed, User

logger = structlog.get_logger(__name__)


class SocialService:
    """社交服务"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def post_activity(
        self,
        sender_id: UUID,
        receiver_id: Optional[UUID],
        activity_type: str,
        data: Dict[str, Any],
    ) -> ActivityFeed:
        """
        发布动态

        Args:
            sender_id: 发送者
            receiver_id: 接收者（None 表示公开动态）
            activity_type: 动态类型
            data: 动态数据，message 缺省时自动生成

        Raises:
            UserNotFoundError: 发送者不存在
        """
        sender = await self.db.get(User, sender_id)
        if sender is None:
            raise UserNotFoundError(str(sender_id))

        activity = ActivityFeed(
            sender_id=sender_id,
            receiver_id=receiver_id,
            type=activity_type,
            message=data.get("message") or f"{sender.first_name} performed {activity_type}",
            data=data,
        )
        self.db.add(activity)
        await self.db.flush()

        logger.info("activity_posted", sender_id=str(sender_id), type=activity_type)
        return activity
