"""
订单管理API模块

按功能拆分为多个子模块：
- core: 响应构建
- crud: 创建与查询
- actions: 状态流转（导出、上传签字单据、提交、审批）
"""

from fastapi import APIRouter
from .crud import router as crud_router
from .actions import router as actions_router

router = APIRouter()

# 合并所有路由
router.include_router(crud_router)
router.include_router(actions_router)
