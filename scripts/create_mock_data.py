#!/usr/bin/env python3
"""Создание мок-заказов для ручной проверки платёжного контура (SQL-хранилище)."""

import sys
import asyncio
from pathlib import Path
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# Добавить корневую директорию проекта в путь
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger
from src.config.settings import get_settings
from src.database.base import db_manager
from src.database.repository import OrderRepository


MOCK_ORDERS = [
    {
        "order_number": "MOCK-1001",
        "client_name": "Алишер",
        "phone": "+998901112233",
        "items": [
            {"product_id": 1, "name": "Набор специй", "gramm": 500, "quantity": 2, "price": 10000},
            {"product_id": 2, "name": "Чай зелёный", "gramm": 250, "quantity": 1, "price": 5000},
        ],
        "total_price": Decimal("25000"),
        "age_hours": 48,
    },
    {
        "order_number": "MOCK-1002",
        "client_name": "Алишер",
        "phone": "+998901112233",
        "items": [
            {"product_id": 3, "name": "Сухофрукты", "gramm": 1000, "quantity": 1, "price": 42500},
        ],
        "total_price": Decimal("42500"),
        "age_hours": 1,
    },
]


async def create_mock_data(chat_id: str):
    """Создать мок-заказы для chat_id в БД."""
    logger.info("=" * 70)
    logger.info("СОЗДАНИЕ МОК-ЗАКАЗОВ В БД")
    logger.info("=" * 70)

    await db_manager.initialize(get_settings())
    await db_manager.create_tables()

    now = datetime.now(timezone.utc)
    try:
        async for session in db_manager.get_session():
            repo = OrderRepository(session)
            for data in MOCK_ORDERS:
                order = await repo.create(
                    order_number=data["order_number"],
                    chat_id=chat_id,
                    items=data["items"],
                    total_price=data["total_price"],
                    client_name=data["client_name"],
                    phone=data["phone"],
                    created_at=now - timedelta(hours=data["age_hours"]),
                )
                logger.info(f"  ✓ #{order.order_number} (id={order.id}), {data['total_price']} сум")
    finally:
        await db_manager.close()

    logger.info(f"\nГотово. Отправьте боту скриншот из чата {chat_id}: оплаченным станет MOCK-1002")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: create_mock_data.py <telegram_chat_id>")
        sys.exit(1)
    asyncio.run(create_mock_data(sys.argv[1]))
