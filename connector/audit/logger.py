"""
Immutable audit trail for ledger mutations.

Every change the payment store makes gets an append-only audit log entry with:
  - Payment ID (which payment changed)
  - Action (what happened)
  - Details (transaction type, state, interaction id, versions)
  - Timestamp (UTC)

Entries are added to the caller's session and committed together with the
change they describe, so a rolled-back update leaves no audit row behind.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from connector.models.records import AuditLog

logger = logging.getLogger("connector.audit")


async def log_event(
    session: AsyncSession,
    action: str,
    payment_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """
    Create an audit log entry.

    Args:
        session: Database session.
        action: What happened (e.g. "payment_created", "transaction_added", "transaction_updated").
        payment_id: The payment this event relates to.
        details: Arbitrary context (serialized to JSON).

    Returns:
        The created AuditLog record.
    """
    entry = AuditLog(
        payment_id=payment_id,
        action=action,
        details=json.dumps(details, default=str) if details else None,
        timestamp=datetime.now(timezone.utc),
    )
    session.add(entry)
    logger.info(
        "AUDIT | payment=%s action=%s | %s",
        payment_id or "-",
        action,
        json.dumps(details, default=str)[:200] if details else "",
    )
    return entry
