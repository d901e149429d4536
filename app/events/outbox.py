from datetime import UTC, datetime, timedelta

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.domain import OutboxEvent

MAX_RETRIES = 5
CLAIM_LEASE_SECONDS = 300


async def push_event(db: AsyncSession, event_type: str, payload: dict) -> OutboxEvent:
    row = OutboxEvent(event_type=event_type, payload_json=payload, status="pending")
    db.add(row)
    await db.flush()
    return row


async def claim_next(db: AsyncSession, lease_seconds: int = CLAIM_LEASE_SECONDS) -> OutboxEvent | None:
    """Lock the oldest due event and lease it as `processing`.

    The caller commits right away so the lease, not the row lock, keeps other
    dispatchers off the event while it is handled. An expired lease makes the
    event due again.
    """
    now = datetime.now(UTC)
    res = await db.execute(
        select(OutboxEvent)
        .where(
            or_(
                and_(
                    OutboxEvent.status == "pending",
                    or_(OutboxEvent.next_retry_at.is_(None), OutboxEvent.next_retry_at <= now),
                ),
                and_(OutboxEvent.status == "processing", OutboxEvent.next_retry_at <= now),
            )
        )
        .order_by(OutboxEvent.id)
        .limit(1)
        .with_for_update(skip_locked=True)
    )
    row = res.scalar_one_or_none()
    if row is None:
        return None
    row.status = "processing"
    row.next_retry_at = now + timedelta(seconds=lease_seconds)
    await db.flush()
    return row


def mark_done(row: OutboxEvent) -> None:
    row.status = "done"
    row.next_retry_at = None


def mark_failed(row: OutboxEvent) -> None:
    row.retry_count += 1
    if row.retry_count >= MAX_RETRIES:
        row.status = "failed"
        return
    row.status = "pending"
    row.next_retry_at = datetime.now(UTC) + timedelta(seconds=30 * 2**row.retry_count)
