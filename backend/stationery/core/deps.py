"""依赖注入 - 调用方上下文与服务实例

认证由网关/会话层完成，这里只读取已解析好的身份头：
- X-User-Id：用户ID（必填）
- X-Department-Id：部门ID
- X-User-Role：admin 表示管理员
"""
from typing import Optional

from fastapi import Header, Request

from stationery.core.exceptions import Unauthenticated
from stationery.domain.events import CallerContext
from stationery.services import PortalServices


def get_services(request: Request) -> PortalServices:
    """获取应用级服务实例（lifespan 中创建）"""
    return request.app.state.services


async def get_caller(
    x_user_id: Optional[int] = Header(None),
    x_department_id: Optional[int] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> CallerContext:
    """
    获取调用方上下文依赖
    """
    if x_user_id is None:
        raise Unauthenticated("缺少用户身份")
    return CallerContext(
        user_id=x_user_id,
        department_id=x_department_id,
        is_admin=(x_user_role or "").strip().lower() == "admin",
    )
