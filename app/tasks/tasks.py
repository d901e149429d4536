import asyncio

import structlog
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

from app.core.constants import EVENT_EVALUATION_COMPLETED, EVENT_JUDGE_SCORE_SUBMITTED
from app.db.session import SessionLocal, engine
from app.events.outbox import claim_next, mark_done, mark_failed
from app.models.domain import OutboxEvent
from app.services.evaluation_service import EvaluationService
from app.services.leaderboard_service import LeaderboardService
from app.tasks.celery_app import celery

logger = structlog.get_logger(__name__)


async def _in_worker(coro):
    # each asyncio.run gets a fresh loop; pooled connections must not outlive it
    try:
        return await coro
    finally:
        await engine.dispose()


async def _evaluate_competition(competition_id: int) -> dict:
    async with SessionLocal() as db:
        return await EvaluationService(db).run_batch(competition_id)


async def _rebuild_leaderboard(competition_id: int) -> dict:
    async with SessionLocal() as db:
        entries = await LeaderboardService(db).build(competition_id)
        return {"competition_id": competition_id, "entries": len(entries)}


async def _dispatch_outbox(session_factory=SessionLocal, max_events: int = 100) -> dict:
    rebuilt: set[int] = set()
    handled = 0
    async with session_factory() as db:
        for _ in range(max_events):
            row = await claim_next(db)
            if row is None:
                break
            event_id, event_type, payload = row.id, row.event_type, dict(row.payload_json or {})
            await db.commit()

            competition_id = int(payload.get("competition_id", 0))
            if event_type == EVENT_EVALUATION_COMPLETED and competition_id not in rebuilt:
                try:
                    await LeaderboardService(db).build(competition_id)
                except (SQLAlchemyError, HTTPException):
                    await db.rollback()
                    logger.exception("outbox_rebuild_failed", event_id=event_id, competition_id=competition_id)
                    row = await db.get(OutboxEvent, event_id)
                    if row:
                        mark_failed(row)
                        await db.commit()
                    continue
                rebuilt.add(competition_id)
            elif event_type == EVENT_JUDGE_SCORE_SUBMITTED:
                # scores only mark the board stale; rebuilds stay admin-driven
                logger.info("judge_score_event", competition_id=competition_id, event_id=event_id)
            row = await db.get(OutboxEvent, event_id)
            if row:
                mark_done(row)
                handled += 1
            await db.commit()
    return {"handled": handled, "rebuilt": sorted(rebuilt)}


@celery.task(name="app.tasks.tasks.evaluate_competition")
def evaluate_competition(competition_id: int) -> dict:
    return asyncio.run(_in_worker(_evaluate_competition(competition_id)))


@celery.task(name="app.tasks.tasks.rebuild_leaderboard")
def rebuild_leaderboard(competition_id: int) -> dict:
    return asyncio.run(_in_worker(_rebuild_leaderboard(competition_id)))


@celery.task(name="app.tasks.tasks.dispatch_outbox")
def dispatch_outbox() -> dict:
    return asyncio.run(_in_worker(_dispatch_outbox()))
