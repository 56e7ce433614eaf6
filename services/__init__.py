"""Пакет прикладных сервисов.

Подмодули импортируются напрямую, например:
    from services.store import Store
    from services import report_service as rs
"""

__all__: list[str] = []
