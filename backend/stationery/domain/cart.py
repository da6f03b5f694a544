"""
购物车 - 下单前的商品选择

纯内存值对象，不在服务端持久化；结算时把 items() 交给 OrderWorkflow.create()。
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List

from stationery.core.exceptions import InvalidPayload


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int

    def as_dict(self) -> dict:
        return {"product_id": self.product_id, "quantity": self.quantity}


def _check_product_id(product_id: int) -> None:
    if not isinstance(product_id, int) or isinstance(product_id, bool) or product_id <= 0:
        raise InvalidPayload(f"无效的商品ID: {product_id!r}")


def _check_quantity(quantity: int, *, allow_zero: bool = False) -> None:
    floor = 0 if allow_zero else 1
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < floor:
        raise InvalidPayload(f"数量必须为不小于 {floor} 的整数: {quantity!r}")


class Cart:
    """购物车

    - 同一商品只占一行，重复添加累加数量
    - 行顺序为首次加入的顺序
    """

    def __init__(self) -> None:
        self._lines: Dict[int, int] = {}

    def add(self, product_id: int, quantity: int = 1) -> CartLine:
        _check_product_id(product_id)
        _check_quantity(quantity)
        self._lines[product_id] = self._lines.get(product_id, 0) + quantity
        return CartLine(product_id, self._lines[product_id])

    def set_quantity(self, product_id: int, quantity: int) -> None:
        """设置数量；数量为 0 表示移除该行"""
        _check_product_id(product_id)
        _check_quantity(quantity, allow_zero=True)
        if quantity == 0:
            self._lines.pop(product_id, None)
        else:
            self._lines[product_id] = quantity

    def remove(self, product_id: int) -> None:
        self._lines.pop(product_id, None)

    def clear(self) -> None:
        self._lines.clear()

    def items(self) -> List[CartLine]:
        return [CartLine(pid, qty) for pid, qty in self._lines.items()]

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def total_quantity(self) -> int:
        return sum(self._lines.values())

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self.items())

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._lines
