#!/usr/bin/env python3
"""
成就回溯处理脚本

用法：
    python scripts/run_retroactive.py                          # 处理所有未完成的成就
    python scripts/run_retroactive.py --achievement-id <UUID>  # 处理单个成就
    python scripts/run_retroactive.py --status                 # 查看全部成就的处理状态
    python scripts/run_retroactive.py --status --achievement-id <UUID>
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional
from uuid import UUID

# 添加项目路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from rangexp.core.config import settings
from rangexp.core.exceptions import AchievementNotFoundError
from rangexp.core.logging import setup_logging
from rangexp.database import close_db, init_db, session_scope
from rangexp.services.container import build_container


async def run(achievement_id: Optional[UUID], status_only: bool, batch_size: int) -> List[Any]:
    try:
        await init_db()
        async with session_scope() as db:
            retroactive = build_container(db, batch_size=batch_size).retroactive

            if status_only:
                if achievement_id is None:
                    return [report.to_dict() for report in await retroactive.get_status()]
                report = await retroactive.get_achievement_status(achievement_id)
                if report is None:
                    raise AchievementNotFoundError(str(achievement_id))
                return [report.to_dict()]

            if achievement_id is None:
                return [result.to_dict() for result in await retroactive.process_all_pending()]
            return [(await retroactive.process_achievement(achievement_id)).to_dict()]
    finally:
        await close_db()


def main():
    parser = argparse.ArgumentParser(description="Retroactive achievement processing")
    parser.add_argument(
        "--achievement-id", "-a",
        type=UUID,
        default=None,
        help="Achievement ID (default: all achievements without a completed run)",
    )
    parser.add_argument(
        "--status", "-s",
        action="store_true",
        help="Show processing status instead of processing",
    )
    parser.add_argument(
        "--batch-size", "-b",
        type=int,
        default=settings.RETROACTIVE_BATCH_SIZE,
        help="Users per batch",
    )
    args = parser.parse_args()

    setup_logging()

    try:
        rows = asyncio.run(run(args.achievement_id, args.status, args.batch_size))
    except AchievementNotFoundError as e:
        print(f"❌ {e.message}: {args.achievement_id}")
        sys.exit(1)

    print(json.dumps(rows, ensure_ascii=False, indent=2))

    if not args.status and any(row["status"] == "failed" for row in rows):
        sys.exit(1)


if __name__ == "__main__":
    main()
