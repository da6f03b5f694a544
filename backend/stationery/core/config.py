from typing import List, Optional, Union
import logging

from pydantic import AnyHttpUrl, Field, validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "文具申领系统"
    API_V1_STR: str = "/api/v1"

    # CORS配置
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # 数据库配置
    SQLITE_DATABASE_URI: str = "sqlite:///./stationery.db"

    # 日志
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # 文件存储（导出单据、已签字单据）
    UPLOAD_DIR: str = "uploads"
    SIGNED_PDF_MAX_BYTES: int = Field(
        default=10 * 1024 * 1024,
        description="已签字PDF的大小上限（字节）"
    )

    # 下单窗口
    ORDER_WINDOW_DEFAULT_OPEN: bool = True  # 进程启动时窗口是否开放

    # 下单窗口定时开关（默认：每月1日 00:00 开放，8日 08:00 关闭）
    ORDER_WINDOW_SCHEDULE_ENABLED: bool = True
    ORDER_WINDOW_OPEN_DAY: str = "1"
    ORDER_WINDOW_OPEN_HOUR: int = 0
    ORDER_WINDOW_OPEN_MINUTE: int = 0
    ORDER_WINDOW_CLOSE_DAY: str = "8"
    ORDER_WINDOW_CLOSE_HOUR: int = 8
    ORDER_WINDOW_CLOSE_MINUTE: int = 0
    ORDER_WINDOW_TIMEZONE: Optional[str] = None

    class Config:
        case_sensitive = True
        env_file = ".env"

    @property
    def async_database_uri(self) -> str:
        """SQLite 地址转换为 aiosqlite 驱动地址"""
        return self.SQLITE_DATABASE_URI.replace("sqlite:///", "sqlite+aiosqlite:///")


settings = Settings()
logger.info(f"加载配置: API_V1_STR={settings.API_V1_STR}, CORS={settings.BACKEND_CORS_ORIGINS}")
