"""
RangeXp 后端

成就条件评估引擎、触发分发、回溯处理
"""

__version__ = "0.1.0"
