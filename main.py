import asyncio
import logging

from config import Settings, get_settings
from core.app_context import get_app_context
from database.init import create_tables, init_from_env
from services.report_service import build_report, reward_eligible
from utils.logging_config import setup_logging
from utils.money import format_amount

__all__ = ["main"]


async def run(settings: Settings) -> int:
    logger = logging.getLogger(__name__)
    context = get_app_context()
    store = context.store

    if not await store.initialize(realtime=settings.realtime_enabled):
        logger.error("Запуск прерван: %s", store.snapshot.error)
        return 1

    try:
        report = build_report(store.invoices)
        logger.info(
            "📊 Квитанций: %s, выручка: %s, ожидают выдачи: %s",
            report.total_invoices,
            format_amount(report.total_revenue, settings.currency),
            report.pending_invoices,
        )
        rewards = [
            c for c in store.clients
            if reward_eligible(c, settings.reward_visit_threshold)
        ]
        if rewards:
            logger.info("🎁 Клиентов с доступной наградой: %s", len(rewards))
        for invoice in store.get_pickup_notifications():
            logger.info("⏰ Выдача заказа %s: %s", invoice.id, invoice.client.name)
    finally:
        store.close()
    return 0


def main(settings: Settings | None = None) -> int:
    """Запускает хранилище химчистки и выводит сводку."""

    settings = settings or get_settings()
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL не задан в .env")

    setup_logging(settings)
    init_from_env(settings.database_url)
    create_tables()
    return asyncio.run(run(settings))


if __name__ == "__main__":
    raise SystemExit(main())
