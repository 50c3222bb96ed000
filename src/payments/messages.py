"""Тексты сообщений бота (Markdown)."""

PAYMENT_REQUEST_TEMPLATE = """💳 *Запрос на оплату*

Ваш заказ №{order_number}

🛒 Заказанные товары:
{product_list}

💰 Общая сумма: *{total} сум*

Для оплаты переведите сумму на карту:
💳 {card_label}: {card_number}
👤 Владелец карты: {card_holder}

После перевода, пожалуйста, отправьте сюда скриншот подтверждения оплаты."""

PAYMENT_REQUEST_LINE = "• {quantity} x {name} - {price} сум"

PAYMENT_CONFIRMED = (
    "✅ Спасибо! Скриншот оплаты получен. Мы проверим его и подтвердим оплату в ближайшее время.\n\n"
    "Ваш заказ будет обработан в кратчайшие сроки!"
)

ORDER_NOT_FOUND = "❌ Не удалось найти ваш заказ. Пожалуйста, свяжитесь с поддержкой."

PROCESSING_FAILED = "❌ Произошла ошибка при обработке скриншота. Пожалуйста, свяжитесь с поддержкой."

SUPPORT_SUFFIX = "\n\nПоддержка: {contact}"

ADMIN_PAYMENT_RECEIVED = """💰 *Новая оплата получена!*

Заказ №{order_number}
Клиент: {client_name}
Телефон: {phone}
Сумма: {total} сум

Скриншот: {screenshot_url}"""

HELP_TEXT = """👋 Здравствуйте!

Когда мы пришлём запрос на оплату, переведите сумму на указанную карту и отправьте сюда скриншот перевода — бот привяжет его к вашему последнему заказу.

Команды:
/status — статус последнего заказа
/help — эта подсказка"""

STATUS_TEXT = """📦 Заказ №{order_number}

Доставка: {delivery_status}
Оплата: {payment_status}
Сумма: {total} сум"""

STATUS_NO_ORDER = "У вас пока нет заказов."

DELIVERY_STATUS_LABELS = {
    "new": "Новый",
    "processing": "В обработке",
    "delivering": "Доставляется",
    "completed": "Завершён",
    "cancelled": "Отменён",
}

PAYMENT_STATUS_LABELS = {
    "pending": "Ожидает оплаты",
    "paid": "Оплачен",
    "failed": "Ошибка оплаты",
}
