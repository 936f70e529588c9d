"""
成就回溯处理

新增成就后为全部存量用户补发：
- 按用户 ID 游标分批（默认每批 100）
- 每批结束后提交并写入进度
- 状态: pending -> processing -> completed | failed
- 失败写入日志并返回结果，不向上抛出

游标不持久化：恢复未完成的日志时沿用其计数，但会从第一个用户重新扫描，
已解锁的用户会被重复计入 processed_users
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog

from rangexp.core.condition_evaluator import ConditionEvaluator
from rangexp.core.config import settings
from rangexp.database.models import (
    Achievement,
    AchievementProcessingLog,
    NotificationType,
    ProcessingStatus,
)
from rangexp.services.achievement_store import AchievementStore

logger = structlog.get_logger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class ProcessingResult:
    """单个成就的回溯处理结果"""
    achievement_id: str
    achievement_code: str
    total_users: int = 0
    processed_users: int = 0
    awarded_count: int = 0
    status: str = ProcessingStatus.COMPLETED
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "achievement_id": self.achievement_id,
            "achievement_code": self.achievement_code,
            "total_users": self.total_users,
            "processed_users": self.processed_users,
            "awarded_count": self.awarded_count,
            "status": self.status,
            "error_message": self.error_message,
        }


@dataclass
class ProcessingStatusReport:
    """成就最近一次回溯处理的状态"""
    achievement_id: str
    achievement_code: str
    status: str = ProcessingStatus.PENDING
    total_users: int = 0
    processed_users: int = 0
    awarded_count: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    @classmethod
    def from_log(
        cls,
        achievement: Achievement,
        log: Optional[AchievementProcessingLog],
    ) -> "ProcessingStatusReport":
        """没有日志时为 pending、计数为 0"""
        report = cls(achievement_id=str(achievement.id), achievement_code=achievement.code)
        if log is not None:
            report.status = log.status
            report.total_users = log.total_users or 0
            report.processed_users = log.processed_users or 0
            report.awarded_count = log.awarded_count or 0
            report.started_at = log.started_at
            report.completed_at = log.completed_at
            report.error_message = log.error_message
        return report

    def to_dict(self) -> Dict[str, Any]:
        return {
            "achievement_id": self.achievement_id,
            "achievement_code": self.achievement_code,
            "status": self.status,
            "total_users": self.total_users,
            "processed_users": self.processed_users,
            "awarded_count": self.awarded_count,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "error_message": self.error_message,
        }


@dataclass
class _RunCounters:
    processed: int = 0
    awarded: int = 0
    batches: List[int] = field(default_factory=list)
    # 最近一次提交时的计数
    committed_processed: int = 0
    committed_awarded: int = 0

    def mark_committed(self) -> None:
        self.committed_processed = self.processed
        self.committed_awarded = self.awarded


class RetroactiveProcessor:
    """成就回溯处理器"""

    def __init__(
        self,
        store: AchievementStore,
        evaluator: ConditionEvaluator,
        batch_size: Optional[int] = None,
    ):
        self.store = store
        self.evaluator = evaluator
        self.batch_size = batch_size or settings.RETROACTIVE_BATCH_SIZE

    async def process_achievement(self, achievement_id: UUID) -> ProcessingResult:
        """
        为全部用户回溯处理一个成就

        Returns:
            ProcessingResult（失败时 status=failed 并带 error_message，
            计数为最后一次提交的进度）
        """
        achievement = await self.store.get_achievement(achievement_id)
        if achievement is None:
            logger.warning("retroactive_achievement_not_found", achievement_id=str(achievement_id))
            return ProcessingResult(
                achievement_id=str(achievement_id),
                achievement_code="UNKNOWN",
                status=ProcessingStatus.FAILED,
                error_message="Achievement not found",
            )

        # 回滚后 ORM 实例会过期，先取出需要的字段
        code = achievement.code
        name = achievement.name
        xp_reward = achievement.xp_reward
        condition = achievement.condition

        log = logger.bind(achievement_id=str(achievement_id), code=code)

        log_id: Optional[UUID] = None
        total_users = 0
        counters = _RunCounters()

        try:
            processing_log = await self.store.get_active_processing_log(achievement_id)
            if processing_log is None:
                processing_log = await self.store.create_processing_log(achievement_id)
            else:
                counters = _RunCounters(
                    processed=processing_log.processed_users or 0,
                    awarded=processing_log.awarded_count or 0,
                )
                counters.mark_committed()
                log.info("retroactive_resuming", processed=counters.processed, awarded=counters.awarded)
            log_id = processing_log.id

            total_users = await self.store.count_users()
            await self.store.update_processing_log(
                log_id,
                status=ProcessingStatus.PROCESSING,
                total_users=total_users,
                started_at=datetime.now(timezone.utc),
            )
            await self.store.commit()
            log.info("retroactive_started", total_users=total_users)

            cursor: Optional[UUID] = None
            while True:
                user_ids = await self.store.list_user_ids_after(cursor, self.batch_size)
                if not user_ids:
                    break

                for user_id in user_ids:
                    if await self.store.has_unlocked(user_id, achievement_id):
                        counters.processed += 1
                        continue

                    result = await self.evaluator.evaluate(user_id, condition)
                    if result.met and await self._award(user_id, achievement_id, code, name, xp_reward):
                        counters.awarded += 1
                    counters.processed += 1

                counters.batches.append(len(user_ids))
                await self.store.update_processing_log(
                    log_id,
                    processed_users=counters.processed,
                    awarded_count=counters.awarded,
                )
                await self.store.commit()
                counters.mark_committed()

                cursor = user_ids[-1]
                log.debug(
                    "retroactive_batch_done",
                    processed=counters.processed,
                    total=total_users,
                    awarded=counters.awarded,
                )

            await self.store.update_processing_log(
                log_id,
                status=ProcessingStatus.COMPLETED,
                processed_users=counters.processed,
                awarded_count=counters.awarded,
                completed_at=datetime.now(timezone.utc),
            )
            await self.store.commit()
            counters.mark_committed()
            log.info("retroactive_completed", awarded=counters.awarded, batches=len(counters.batches))

            return ProcessingResult(
                achievement_id=str(achievement_id),
                achievement_code=code,
                total_users=total_users,
                processed_users=counters.processed,
                awarded_count=counters.awarded,
                status=ProcessingStatus.COMPLETED,
            )

        except Exception as e:
            error_message = str(e) or e.__class__.__name__
            await self.store.rollback()
            if log_id is not None:
                await self.store.update_processing_log(
                    log_id,
                    status=ProcessingStatus.FAILED,
                    error_message=error_message,
                    completed_at=datetime.now(timezone.utc),
                )
                await self.store.commit()
            log.error(
                "retroactive_failed",
                error=error_message,
                processed=counters.committed_processed,
                discarded=counters.processed - counters.committed_processed,
            )

            return ProcessingResult(
                achievement_id=str(achievement_id),
                achievement_code=code,
                total_users=total_users,
                processed_users=counters.committed_processed,
                awarded_count=counters.committed_awarded,
                status=ProcessingStatus.FAILED,
                error_message=error_message,
            )

    async def _award(
        self,
        user_id: UUID,
        achievement_id: UUID,
        code: str,
        name: str,
        xp_reward: int,
    ) -> bool:
        """写入解锁记录、直接加 XP、发送通知；记录已存在时返回 False"""
        if await self.store.create_user_achievement(user_id, achievement_id) is None:
            return False

        if xp_reward > 0:
            await self.store.increment_user_xp(user_id, xp_reward)

        await self.store.create_notification(
            user_id,
            NotificationType.ACHIEVEMENT,
            "Logro desbloqueado",
            f"Has desbloqueado: {name}",
            {
                "achievementCode": code,
                "achievementName": name,
                "xpReward": xp_reward,
            },
        )
        return True

    async def process_all_pending(self) -> List[ProcessingResult]:
        """处理所有还没有成功完成过回溯的成就，单个失败不影响后续"""
        achievements = await self.store.list_achievements_without_completed_log()
        pending = [(achievement.id, achievement.code) for achievement in achievements]
        logger.info("retroactive_pending_found", count=len(pending))

        results = []
        for achievement_id, code in pending:
            try:
                results.append(await self.process_achievement(achievement_id))
            except Exception as e:
                # 失败状态本身也没能写入
                error_message = str(e) or e.__class__.__name__
                logger.error(
                    "retroactive_aborted",
                    achievement_id=str(achievement_id),
                    code=code,
                    error=error_message,
                )
                await self.store.rollback()
                results.append(
                    ProcessingResult(
                        achievement_id=str(achievement_id),
                        achievement_code=code,
                        status=ProcessingStatus.FAILED,
                        error_message=error_message,
                    )
                )
        return results

    async def get_status(self) -> List[ProcessingStatusReport]:
        """全部成就的最近处理状态"""
        return [
            ProcessingStatusReport.from_log(achievement, processing_log)
            for achievement, processing_log in await self.store.list_achievements_with_latest_log()
        ]

    async def get_achievement_status(self, achievement_id: UUID) -> Optional[ProcessingStatusReport]:
        """单个成就的最近处理状态，成就不存在返回 None"""
        achievement = await self.store.get_achievement(achievement_id)
        if achievement is None:
            return None
        processing_log = await self.store.latest_processing_log(achievement_id)
        return ProcessingStatusReport.from_log(achievement, processing_log)
