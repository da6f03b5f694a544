"""下单窗口 Schema"""

from pydantic import BaseModel


class OrderWindowResponse(BaseModel):
    open: bool
    version: int


class OrderWindowToggle(BaseModel):
    open: bool
