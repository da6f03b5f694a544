import uvicorn
import os

from stationery.core.config import settings

if __name__ == "__main__":
    # 开发环境开启热重载（通过环境变量控制）
    is_dev = os.getenv("RELOAD", "true").lower() == "true"

    uvicorn.run(
        "stationery.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=is_dev,
        log_level=settings.LOG_LEVEL.lower()
    )
