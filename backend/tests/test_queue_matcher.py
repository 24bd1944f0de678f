"""
Tests for FIFO matching, queueing and cancellation
"""
import asyncio
import random
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.dialects import postgresql

from pairmatch.core.exceptions import (AlreadyMatchedError, GenerationError,
                                       NotFoundError, RoleNotSelectedError)
from pairmatch.models.assignment import Assignment
from pairmatch.models.catalog import Archetype, Theme
from pairmatch.models.match import Match, MatchParticipant, MatchStatus
from pairmatch.models.participant import Participant, ParticipantRole
from pairmatch.services.generation_client import GenerationClient
from pairmatch.services.participant_service import ParticipantService
from pairmatch.services.queue_matcher import (TOPIC_MAX_LENGTH, QueueMatcher,
                                             normalize_topic)
from pairmatch.services.selector import Selector

FRONTEND = ParticipantRole.FRONTEND
BACKEND = ParticipantRole.BACKEND
T0 = datetime(2020, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def matcher_factory(test_settings, scripted_llm, generated_project):
    def _make(session, *outcomes):
        llm = scripted_llm(*(outcomes or (generated_project,)))
        return QueueMatcher(
            session,
            generation_client=GenerationClient(test_settings, llm_client=llm, sleep=lambda _: None),
            selector=Selector(session, rng=random.Random(1), default_complexity=2),
            settings=test_settings,
        )
    return _make


@pytest.fixture
def matcher(seeded_catalog, matcher_factory):
    return matcher_factory(seeded_catalog)


def _activate_match(session, frontend_id, backend_id):
    match = Match(status=MatchStatus.ACTIVE.value)
    match.participants = [
        MatchParticipant(participant_id=frontend_id, role=FRONTEND.value),
        MatchParticipant(participant_id=backend_id, role=BACKEND.value),
    ]
    session.add(match)
    session.commit()
    return match


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_unknown_participant(matcher):
    import uuid
    with pytest.raises(NotFoundError):
        await matcher.request_match(uuid.uuid4())


@pytest.mark.asyncio
async def test_role_must_be_selected(matcher, make_participant):
    nobody = make_participant("NoRole")
    with pytest.raises(RoleNotSelectedError):
        await matcher.request_match(nobody.id)


@pytest.mark.asyncio
async def test_already_matched_participant_is_rejected(matcher, make_participant, db):
    fe = make_participant("Ann", role=FRONTEND)
    be = make_participant("Bob", role=BACKEND)
    _activate_match(db, fe.id, be.id)

    with pytest.raises(AlreadyMatchedError):
        await matcher.request_match(fe.id)


# ---------------------------------------------------------------------------
# Pairing
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_first_waits_second_matches(matcher, make_participant, db):
    x = make_participant("Xena", role=FRONTEND, skills=["React"])
    y = make_participant("Yuri", role=BACKEND, skills=["Go"], surname="Gagarin")

    waiting = await matcher.request_match(x.id)
    assert waiting.status == "WAITING"
    assert waiting.queue_position == 1
    assert waiting.waiting_since is not None

    matched = await matcher.request_match(y.id)
    assert matched.status == "MATCHED"
    assert matched.partner.participant_id == x.id
    assert matched.partner.name == "Xena"
    assert matched.partner.role == "FRONTEND"
    assert matched.assignment.title == "BudgetBuddy - Shared Expense Tracker"
    assert not matched.assignment.is_fallback

    db.expire_all()
    assert db.get(Participant, x.id).waiting_since is None
    assert db.get(Participant, y.id).waiting_since is None

    match = db.get(Match, matched.match_id)
    assert match.status == MatchStatus.ACTIVE.value
    assert {link.participant_id for link in match.participants} == {x.id, y.id}
    assert match.assignment is not None
    assert match.assignment.end_date - match.assignment.start_date == timedelta(days=7)


@pytest.mark.asyncio
async def test_partner_name_includes_surname(matcher, make_participant):
    x = make_participant("Yuri", role=BACKEND, surname="Gagarin")
    y = make_participant("Xena", role=FRONTEND)

    await matcher.request_match(x.id)
    matched = await matcher.request_match(y.id)
    assert matched.partner.name == "Yuri Gagarin"


@pytest.mark.asyncio
async def test_repoll_keeps_waiting_since(matcher, make_participant):
    x = make_participant("Xena", role=FRONTEND)

    first = await matcher.request_match(x.id)
    second = await matcher.request_match(x.id)

    assert second.status == "WAITING"
    assert second.waiting_since == first.waiting_since
    assert second.queue_position == 1


@pytest.mark.asyncio
async def test_oldest_waiting_partner_is_claimed(matcher, make_participant, db):
    f1 = make_participant("F1", role=FRONTEND, waiting_since=T0)
    f2 = make_participant("F2", role=FRONTEND, waiting_since=T0 + timedelta(seconds=1))
    f3 = make_participant("F3", role=FRONTEND, waiting_since=T0 + timedelta(seconds=2))
    b1 = make_participant("B1", role=BACKEND)
    b2 = make_participant("B2", role=BACKEND)

    assert matcher.queue_status(f3.id).queue_position == 3

    assert (await matcher.request_match(b1.id)).partner.participant_id == f1.id
    assert (await matcher.request_match(b2.id)).partner.participant_id == f2.id

    status = matcher.queue_status(f3.id)
    assert status.status == "WAITING"
    assert status.queue_position == 1


@pytest.mark.asyncio
async def test_equal_timestamps_are_ordered_by_id(matcher, make_participant):
    a = make_participant("A", role=FRONTEND, waiting_since=T0)
    b = make_participant("B", role=FRONTEND, waiting_since=T0)
    first, second = sorted([a, b], key=lambda p: p.id)

    assert matcher.queue_status(first.id).queue_position == 1
    assert matcher.queue_status(second.id).queue_position == 2

    backend = make_participant("Back", role=BACKEND)
    matched = await matcher.request_match(backend.id)
    assert matched.partner.participant_id == first.id


@pytest.mark.asyncio
async def test_same_role_is_never_paired(matcher, make_participant):
    make_participant("F1", role=FRONTEND, waiting_since=T0)
    f2 = make_participant("F2", role=FRONTEND)

    result = await matcher.request_match(f2.id)
    assert result.status == "WAITING"
    assert result.queue_position == 2


@pytest.mark.asyncio
async def test_waiting_participant_in_active_match_is_skipped(matcher, make_participant, db):
    stale = make_participant("Stale", role=FRONTEND, waiting_since=T0)
    other_backend = make_participant("Other", role=BACKEND)
    _activate_match(db, stale.id, other_backend.id)
    fresh = make_participant("Fresh", role=FRONTEND, waiting_since=T0 + timedelta(seconds=5))
    backend = make_participant("Back", role=BACKEND)

    matched = await matcher.request_match(backend.id)
    assert matched.partner.participant_id == fresh.id


@pytest.mark.asyncio
async def test_generation_failure_still_pairs(seeded_catalog, matcher_factory, make_participant, db):
    matcher = matcher_factory(seeded_catalog, GenerationError("boom", status_code=500))
    x = make_participant("Xena", role=FRONTEND, waiting_since=T0)
    y = make_participant("Yuri", role=BACKEND)

    matched = await matcher.request_match(y.id, topic="recipes")

    assert matched.status == "MATCHED"
    assert matched.partner.participant_id == x.id
    assert matched.assignment.is_fallback
    assert matched.assignment.title == "Recipes Collaborative Mini Project"
    assignment = db.query(Assignment).filter(Assignment.match_id == matched.match_id).one()
    assert assignment.is_fallback
    assert assignment.archetype_id is not None


@pytest.mark.asyncio
async def test_empty_catalog_pairs_with_fallback(db, matcher_factory, make_participant):
    matcher = matcher_factory(db)
    make_participant("Xena", role=FRONTEND, waiting_since=T0)
    y = make_participant("Yuri", role=BACKEND)

    matched = await matcher.request_match(y.id)

    assert matched.assignment.is_fallback
    assert matched.assignment.archetype_code is None
    assert db.query(Archetype).count() == 0
    assert db.query(Theme).count() == 0


@pytest.mark.asyncio
async def test_assignment_records_selection(matcher, make_participant, db):
    make_participant("Xena", role=FRONTEND, difficulty=1, waiting_since=T0)
    y = make_participant("Yuri", role=BACKEND, difficulty=1)

    matched = await matcher.request_match(y.id)

    assert matched.assignment.archetype_code == "CRUD_APP"
    assert matched.assignment.target_complexity == 1
    assert matched.assignment.theme_code is not None


@pytest.mark.asyncio
async def test_losing_own_row_then_matched_elsewhere(matcher, make_participant, db, session_factory):
    fe = make_participant("Ann", role=FRONTEND, waiting_since=T0)
    be = make_participant("Bob", role=BACKEND)
    original_lock = matcher._lock_self
    state = {"raced": False}

    def racing_lock(participant, observed):
        if not state["raced"]:
            state["raced"] = True
            other = session_factory()
            try:
                other.query(Participant).filter(Participant.id == fe.id).update({"waiting_since": None})
                _activate_match(other, fe.id, be.id)
            finally:
                other.close()
            return False
        return original_lock(participant, observed)

    matcher._lock_self = racing_lock

    with pytest.raises(AlreadyMatchedError):
        await matcher.request_match(fe.id)

@pytest.mark.asyncio
async def test_role_change_before_claim_is_not_paired(matcher, make_participant, db, session_factory):
    waiting = make_participant("Wes", role=BACKEND, waiting_since=T0)
    requester = make_participant("Pia", role=FRONTEND)
    original_lock = matcher._lock_self
    state = {"raced": False}

    def role_changes_first(participant, observed):
        if not state["raced"]:
            state["raced"] = True
            other = session_factory()
            try:
                ParticipantService(other).select_role(requester.id, BACKEND)
            finally:
                other.close()
        return original_lock(participant, observed)

    matcher._lock_self = role_changes_first

    result = await matcher.request_match(requester.id)

    # Re-evaluated as BACKEND: nobody to pair with
    assert result.status == "WAITING"
    db.expire_all()
    assert db.query(Match).count() == 0
    assert db.get(Participant, waiting.id).waiting_since is not None
    stored = db.get(Participant, requester.id)
    assert stored.role == BACKEND.value
    assert stored.waiting_since is not None


@pytest.mark.asyncio
async def test_lost_claim_moves_to_next_candidate(matcher, make_participant):
    first = make_participant("B1", role=BACKEND, waiting_since=T0)
    second = make_participant("B2", role=BACKEND, waiting_since=T0 + timedelta(minutes=1))
    frontend = make_participant("Fay", role=FRONTEND)
    original_claim = matcher._claim
    lost = []

    def first_claim_loses(candidate_id):
        if not lost:
            lost.append(candidate_id)
            return False
        return original_claim(candidate_id)

    matcher._claim = first_claim_loses

    result = await matcher.request_match(frontend.id)

    assert lost == [first.id]
    assert result.status == "MATCHED"
    assert result.partner.participant_id == second.id


def test_candidate_lock_covers_one_row(matcher, make_participant):
    frontend = make_participant("Fay", role=FRONTEND)

    query = matcher._candidate_query(frontend, [], lock=True)
    sql = str(query.statement.compile(dialect=postgresql.dialect()))

    assert "LIMIT" in sql
    assert "FOR UPDATE SKIP LOCKED" in sql


def test_normalize_topic():
    assert normalize_topic(None) is None
    assert normalize_topic("   ") is None
    assert normalize_topic("  budgeting ") == "budgeting"


@pytest.mark.asyncio
async def test_overlong_topic_is_rejected_before_queueing(matcher, make_participant, db):
    x = make_participant("Xena", role=FRONTEND)

    with pytest.raises(ValueError):
        await matcher.request_match(x.id, topic="t" * (TOPIC_MAX_LENGTH + 1))

    db.expire_all()
    assert db.get(Participant, x.id).waiting_since is None


# ---------------------------------------------------------------------------
# Queue maintenance
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cancel_waiting(matcher, make_participant, db):
    x = make_participant("Xena", role=FRONTEND)
    await matcher.request_match(x.id)

    assert matcher.cancel_waiting(x.id) is True
    assert matcher.cancel_waiting(x.id) is False

    db.expire_all()
    assert db.get(Participant, x.id).waiting_since is None
    assert matcher.queue_status(x.id).status == "IDLE"


def test_cancel_unknown_participant(matcher):
    import uuid
    with pytest.raises(NotFoundError):
        matcher.cancel_waiting(uuid.uuid4())


@pytest.mark.asyncio
async def test_cancelled_participant_is_not_claimed(matcher, make_participant):
    x = make_participant("Xena", role=FRONTEND, waiting_since=T0)
    y = make_participant("Yuri", role=BACKEND)

    matcher.cancel_waiting(x.id)
    result = await matcher.request_match(y.id)
    assert result.status == "WAITING"


@pytest.mark.asyncio
async def test_queue_status_reports_active_match(matcher, make_participant):
    x = make_participant("Xena", role=FRONTEND)
    y = make_participant("Yuri", role=BACKEND)

    assert matcher.queue_status(x.id).status == "IDLE"
    await matcher.request_match(x.id)
    assert matcher.queue_status(x.id).status == "WAITING"
    matched = await matcher.request_match(y.id)

    status = matcher.queue_status(x.id)
    assert status.status == "MATCHED"
    assert status.match_id == matched.match_id


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------

def _request_in_thread(session_factory, matcher_factory, participant_id, barrier):
    session = session_factory()
    try:
        matcher = matcher_factory(session)
        barrier.wait()
        return asyncio.run(matcher.request_match(participant_id))
    finally:
        session.close()


def test_waiting_partner_is_claimed_exactly_once(seeded_catalog, session_factory, matcher_factory, make_participant):
    db = seeded_catalog
    backend = make_participant("Back", role=BACKEND, waiting_since=T0)
    frontends = [make_participant(f"F{i}", role=FRONTEND) for i in range(5)]
    barrier = threading.Barrier(len(frontends))

    with ThreadPoolExecutor(max_workers=len(frontends)) as pool:
        futures = [
            pool.submit(_request_in_thread, session_factory, matcher_factory, f.id, barrier)
            for f in frontends
        ]
        results = [f.result(timeout=60) for f in futures]

    matched = [r for r in results if r.status == "MATCHED"]
    assert len(matched) == 1
    assert matched[0].partner.participant_id == backend.id
    assert sum(1 for r in results if r.status == "WAITING") == 4

    db.expire_all()
    assert db.query(Match).count() == 1
    assert db.query(MatchParticipant).filter(MatchParticipant.participant_id == backend.id).count() == 1


def test_concurrent_requests_pair_everyone(seeded_catalog, session_factory, matcher_factory, make_participant):
    db = seeded_catalog
    participants = [make_participant(f"F{i}", role=FRONTEND) for i in range(3)]
    participants += [make_participant(f"B{i}", role=BACKEND) for i in range(3)]
    barrier = threading.Barrier(len(participants))

    with ThreadPoolExecutor(max_workers=len(participants)) as pool:
        futures = [
            pool.submit(_request_in_thread, session_factory, matcher_factory, p.id, barrier)
            for p in participants
        ]
        [f.result(timeout=60) for f in futures]

    db.expire_all()
    assert db.query(Match).filter(Match.status == MatchStatus.ACTIVE.value).count() == 3
    assert db.query(Participant).filter(Participant.waiting_since.isnot(None)).count() == 0
    for p in participants:
        assert db.query(MatchParticipant).filter(MatchParticipant.participant_id == p.id).count() == 1


def _cancel_in_thread(session_factory, matcher_factory, participant_id, barrier):
    session = session_factory()
    try:
        matcher = matcher_factory(session)
        barrier.wait()
        return matcher.cancel_waiting(participant_id)
    finally:
        session.close()


@pytest.mark.parametrize("run", range(5))
def test_cancel_and_claim_have_one_winner(seeded_catalog, session_factory, matcher_factory, make_participant, run):
    db = seeded_catalog
    x = make_participant("Xena", role=FRONTEND, waiting_since=T0)
    y = make_participant("Yuri", role=BACKEND)
    barrier = threading.Barrier(2)

    with ThreadPoolExecutor(max_workers=2) as pool:
        cancel = pool.submit(_cancel_in_thread, session_factory, matcher_factory, x.id, barrier)
        request = pool.submit(_request_in_thread, session_factory, matcher_factory, y.id, barrier)
        cancelled = cancel.result(timeout=60)
        result = request.result(timeout=60)

    db.expire_all()
    assert db.get(Participant, x.id).waiting_since is None
    if result.status == "MATCHED":
        assert result.partner.participant_id == x.id
        assert cancelled is False
    else:
        assert result.status == "WAITING"
        assert cancelled is True
        assert db.query(Match).count() == 0
