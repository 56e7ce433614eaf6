"""Журнал аудита: запись без гарантий, не влияющая на основную операцию."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from infrastructure.table_gateway import TableGateway
from services.session_service import SessionHolder

logger = logging.getLogger(__name__)

CREATE = "create"
UPDATE = "update"
DELETE = "delete"
STATUS_UPDATE = "status_update"


class AuditLogger:
    def __init__(self, gateway: TableGateway, session: SessionHolder) -> None:
        self.gateway = gateway
        self.session = session

    async def record(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        changes: Mapping[str, Any] | None = None,
    ) -> bool:
        """Добавить строку в ``audit_logs``; ``False`` при любой ошибке."""
        phone, name = self.session.actor()
        try:
            await self.gateway.insert(
                "audit_logs",
                {
                    "action": action,
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "actor_phone": phone,
                    "actor_name": name,
                    "changes": (
                        json.dumps(dict(changes), ensure_ascii=False, default=str)
                        if changes is not None
                        else None
                    ),
                },
            )
        except Exception:
            logger.debug("Failed to write audit log", exc_info=True)
            return False
        return True


__all__ = ["AuditLogger", "CREATE", "UPDATE", "DELETE", "STATUS_UPDATE"]
