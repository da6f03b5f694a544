"""插入演示数据：常用文具目录"""
import asyncio
from sqlalchemy import func, select

from stationery.db.init_db import ensure_tables_exist
from stationery.db.session import SessionLocal
from stationery.models import Product

DEMO_PRODUCTS = [
    ("A4打印纸", "包"),
    ("黑色中性笔", "支"),
    ("红色中性笔", "支"),
    ("笔记本", "本"),
    ("订书机", "个"),
    ("订书钉", "盒"),
    ("文件夹", "个"),
    ("便利贴", "本"),
    ("胶棒", "支"),
    ("长尾夹", "盒"),
]


async def insert_demo():
    await ensure_tables_exist()
    async with SessionLocal() as db:
        # 检查是否已有数据
        count = (await db.execute(select(func.count(Product.id)))).scalar() or 0
        if count > 0:
            print('已存在数据，跳过')
            return

        for name, unit in DEMO_PRODUCTS:
            db.add(Product(name=name, unit=unit, is_active=True))
        await db.commit()
        print(f'✓ 插入文具 {len(DEMO_PRODUCTS)} 种')
        print('演示数据插入完成!')

if __name__ == "__main__":
    asyncio.run(insert_demo())
