"""
成就回溯任务

每个任务用 asyncio.run 驱动异步处理器，使用独立会话，
结束后释放连接（每次 asyncio.run 都是新的事件循环）
"""

import asyncio
from typing import Any, Dict, List
from uuid import UUID

import structlog
from celery import shared_task

from rangexp.database import close_db, session_scope
from rangexp.services.container import build_container

logger = structlog.get_logger(__name__)


async def _process_retroactive(achievement_id: str) -> Dict[str, Any]:
    try:
        async with session_scope() as db:
            result = await build_container(db).retroactive.process_achievement(UUID(achievement_id))
            return result.to_dict()
    finally:
        await close_db()


async def _process_all_pending() -> List[Dict[str, Any]]:
    try:
        async with session_scope() as db:
            results = await build_container(db).retroactive.process_all_pending()
            return [result.to_dict() for result in results]
    finally:
        await close_db()


@shared_task(name="achievements.process_retroactive")
def process_retroactive(achievement_id: str) -> Dict[str, Any]:
    """
    为全部用户回溯处理一个成就

    Args:
        achievement_id: 成就 ID
    """
    logger.info("task_process_retroactive", achievement_id=achievement_id)
    result = asyncio.run(_process_retroactive(achievement_id))
    logger.info(
        "task_process_retroactive_done",
        achievement_id=achievement_id,
        status=result["status"],
        awarded=result["awarded_count"],
    )
    return result


@shared_task(name="achievements.process_all_pending")
def process_all_pending() -> List[Dict[str, Any]]:
    """回溯处理所有未完成的成就"""
    logger.info("task_process_all_pending")
    results = asyncio.run(_process_all_pending())
    logger.info(
        "task_process_all_pending_done",
        total=len(results),
        failed=sum(1 for r in results if r["status"] == "failed"),
    )
    return results
