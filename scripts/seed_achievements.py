#!/usr/bin/env python3
"""
成就目录导入脚本

按 code 写入（存在则更新）内置成就

用法：
    python scripts/seed_achievements.py
"""

import asyncio
import sys
from pathlib import Path

# 添加项目路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from rangexp.core.logging import setup_logging
from rangexp.database import close_db, init_db, session_scope
from rangexp.services.container import build_container


async def seed() -> int:
    try:
        await init_db()
        async with session_scope() as db:
            result = await build_container(db).achievements.seed_achievements()
    finally:
        await close_db()
    return result["seeded"]


def main():
    setup_logging()
    seeded = asyncio.run(seed())
    print(f"✅ Seeded {seeded} achievements")


if __name__ == "__main__":
    main()
