"""后台任务（Celery）"""
