from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """当前 UTC 时间（无时区信息，与 SQLite 存储保持一致）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
