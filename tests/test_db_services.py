import asyncio
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.constants import EVENT_EVALUATION_COMPLETED, LeaderboardBoard, Role, SubmissionStatus
from app.db.base import Base
from app.events.outbox import claim_next, push_event
from app.models.domain import Challenge, Competition, JudgeAssignment, OutboxEvent, Submission, User
from app.services.distribution_service import DistributionService
from app.services.judge_service import JudgeService
from app.services.leaderboard_service import LeaderboardService
from app.tasks.tasks import _dispatch_outbox

T0 = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)
RUBRIC = [{"name": "Clarity", "description": "", "weight": 0.5}, {"name": "Depth", "description": "", "weight": 0.5}]


def run_db(scenario):
    async def main():
        engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        factory = async_sessionmaker(engine, expire_on_commit=False)
        try:
            return await scenario(factory)
        finally:
            await engine.dispose()

    return asyncio.run(main())


def make_user(user_id: UUID | None = None, role: Role = Role.PARTICIPANT, name: str = "") -> User:
    user_id = user_id or uuid4()
    return User(id=user_id, external_id=f"ext-{user_id}", email=f"{user_id}@example.com", full_name=name, role=role)


def make_competition(competition_id: int = 1, top_n: int = 0) -> Competition:
    return Competition(
        id=competition_id,
        title="Spring round",
        start_deadline=T0 - timedelta(days=1),
        end_deadline=T0 + timedelta(days=1),
        top_n=top_n,
    )


def make_submission(
    participant: User, challenge_id: int = 10, automated: float | None = None, minutes: int = 0
) -> Submission:
    return Submission(
        id=f"{participant.id}_{challenge_id}",
        competition_id=1,
        challenge_id=challenge_id,
        participant_id=participant.id,
        prompt_text="write a haiku",
        automated_score=automated,
        submitted_at=T0 + timedelta(minutes=minutes),
    )


async def seed(db, users, submissions, top_n: int = 0):
    db.add(make_competition(top_n=top_n))
    db.add(Challenge(id=10, competition_id=1, title="Haiku", rubric=RUBRIC))
    db.add_all(users)
    await db.flush()
    db.add_all(submissions)
    await db.commit()


async def read_all_pages(service: LeaderboardService, page_size: int, board=LeaderboardBoard.AUTOMATED) -> list[str]:
    seen: list[str] = []
    cursor = None
    while True:
        page = await service.get_page(1, page_size, cursor, board)
        seen += [e["participantId"] for e in page["entries"]]
        cursor = page["nextCursor"]
        if cursor is None:
            return seen


def test_paged_leaderboard_keeps_built_tie_order():
    early = make_user(UUID("ffffffff-ffff-ffff-ffff-000000000001"))
    late = make_user(UUID("00000000-0000-0000-0000-000000000002"))

    async def scenario(factory):
        async with factory() as db:
            await seed(
                db,
                [early, late],
                [make_submission(late, automated=50.0, minutes=5), make_submission(early, automated=50.0)],
            )
            service = LeaderboardService(db)
            built = [e["participantId"] for e in await service.build(1)]
            paged = await read_all_pages(service, page_size=1)
            return built, paged

    built, paged = run_db(scenario)
    assert built == [str(early.id), str(late.id)]
    assert paged == built


def test_paging_neither_skips_nor_repeats_rows():
    users = [make_user() for _ in range(7)]
    scores = [90.0, 70.0, 70.0, 70.0, 55.0, 40.0, 40.0]

    async def scenario(factory):
        async with factory() as db:
            await seed(
                db,
                users,
                [make_submission(u, automated=s, minutes=i) for i, (u, s) in enumerate(zip(users, scores))],
            )
            service = LeaderboardService(db)
            built = await service.build(1)
            paged = await read_all_pages(service, page_size=3)
            return built, paged

    built, paged = run_db(scenario)
    assert paged == [e["participantId"] for e in built]
    assert [e["rank"] for e in built] == [1, 2, 2, 2, 3, 4, 4]
    assert all("email" not in e for e in built)


def test_final_board_waits_for_top_n_judge_scores():
    leader, runner_up = make_user(), make_user()

    async def scenario(factory):
        async with factory() as db:
            await seed(
                db,
                [leader, runner_up],
                [make_submission(leader, automated=80.0), make_submission(runner_up, automated=60.0)],
                top_n=1,
            )
            service = LeaderboardService(db)
            await service.build(1)
            with pytest.raises(HTTPException) as early:
                await service.get_page(1, 10, board=LeaderboardBoard.FINAL)

            submission = await db.get(Submission, f"{leader.id}_10")
            submission.judge_score = 30.0
            await db.commit()
            await service.build(1)
            page = await service.get_page(1, 10, board=LeaderboardBoard.FINAL)
            return early.value.status_code, page

    status_code, page = run_db(scenario)
    assert status_code == 409
    assert [e["participantId"] for e in page["entries"]] == [str(leader.id), str(runner_up.id)]
    assert [e["finalScore"] for e in page["entries"]] == [110.0, 60.0]
    assert page["entries"][1]["judgeScore"] is None


def test_distribution_rerun_replaces_assignment_records():
    judges = [make_user(role=Role.JUDGE), make_user(role=Role.JUDGE)]
    participants = [make_user() for _ in range(4)]

    async def scenario(factory):
        async with factory() as db:
            await seed(db, judges + participants, [make_submission(p) for p in participants])
            service = DistributionService(db)
            first = await service.distribute(1)
            after_first = await service.current_assignments(1)

            only_one = await service.distribute(1, judge_ids=[judges[0].id])
            after_second = await service.current_assignments(1)

            for judge in judges:
                judge.is_active = False
            await db.commit()
            nobody = await service.distribute(1)
            after_third = await service.current_assignments(1)
            return first, after_first, only_one, after_second, nobody, after_third

    first, after_first, only_one, after_second, nobody, after_third = run_db(scenario)
    assert first["totalDistributed"] == 4
    assert sorted(j["assignedCountTotal"] for j in after_first["judges"]) == [2, 2]
    assert only_one["totalDistributed"] == 4
    assert [j["assignedCountTotal"] for j in after_second["judges"]] == [4]
    assert nobody["unassignedChallenges"] == ["10"]
    assert after_third["judges"] == []


def test_judge_can_only_score_assigned_submissions():
    judge = make_user(role=Role.JUDGE)
    mine, other = make_user(), make_user()

    async def scenario(factory):
        async with factory() as db:
            await seed(db, [judge, mine, other], [make_submission(mine), make_submission(other)])
            db.add(
                JudgeAssignment(
                    competition_id=1,
                    judge_id=judge.id,
                    assigned_count_total=1,
                    assigned_counts_by_challenge={"10": 1},
                    submissions_by_challenge={"10": [f"{mine.id}_10"]},
                )
            )
            await db.commit()
            service = JudgeService(db)
            with pytest.raises(HTTPException) as refused:
                await service.submit_score(judge.id, 1, f"{other.id}_10", {"Clarity": 90, "Depth": 90}, "")

            result = await service.submit_score(judge.id, 1, f"{mine.id}_10", {"Clarity": 80, "Depth": 140}, "ok")
            scored = await db.get(Submission, f"{mine.id}_10")
            assignment = (await db.execute(select(JudgeAssignment))).scalar_one()
            events = (await db.execute(select(OutboxEvent))).scalars().all()
            return refused.value.status_code, result, scored, assignment, events

    status_code, result, scored, assignment, events = run_db(scenario)
    assert status_code == 403
    assert result["scores"] == {"Clarity": 80.0, "Depth": 100.0}
    assert result["totalScore"] == 90.0
    assert scored.status == SubmissionStatus.SCORED
    assert scored.judge_score == 90.0
    assert assignment.reviewed_count == 1
    assert [e.event_type for e in events] == ["judge_score.submitted"]


def test_claimed_event_is_leased_until_handled():
    async def scenario(factory):
        async with factory() as db:
            await push_event(db, EVENT_EVALUATION_COMPLETED, {"competition_id": 1})
            await db.commit()
            first = await claim_next(db)
            await db.commit()
            second = await claim_next(db)
            return first, second

    first, second = run_db(scenario)
    assert first is not None
    assert first.status == "processing"
    assert second is None


def test_dispatcher_rebuilds_board_once_per_competition():
    participant = make_user()

    async def scenario(factory):
        async with factory() as db:
            await seed(db, [participant], [make_submission(participant, automated=42.0)])
            await push_event(db, EVENT_EVALUATION_COMPLETED, {"competition_id": 1})
            await push_event(db, EVENT_EVALUATION_COMPLETED, {"competition_id": 1})
            await db.commit()
        outcome = await _dispatch_outbox(session_factory=factory)
        async with factory() as db:
            statuses = (await db.execute(select(OutboxEvent.status))).scalars().all()
            page = await LeaderboardService(db).get_page(1, 10)
        return outcome, statuses, page

    outcome, statuses, page = run_db(scenario)
    assert outcome == {"handled": 2, "rebuilt": [1]}
    assert statuses == ["done", "done"]
    assert [e["automatedScore"] for e in page["entries"]] == [42.0]
