"""
Tests for contest authoring, registration, cancellation and result submission.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from mindbattle.models.audit_log import AuditLog
from mindbattle.models.contest_history import ContestHistory
from mindbattle.models.base import (
    AdminRole,
    AuditLogAction,
    ContestFormat,
    ContestStatus,
    TimerType,
    TransactionType,
)
from mindbattle.schemas.contest import (
    ContestCreateRequest,
    ContestUpdateRequest,
    FastestFingerResults,
    KBCResults,
)
from mindbattle.services.contest_service import ContestError, ContestNotFoundError, ContestService
from mindbattle.services.contest_status_service import ContestTransitionError, to_snapshot
from mindbattle.services.ranking_service import RankingService
from mindbattle.services.wallet_service import WalletService, calculate_balance
from mindbattle.utils import utc_now


def _create_request(**overrides) -> ContestCreateRequest:
    now = utc_now()
    values = dict(
        title="Weekend Trivia",
        category="History",
        entry_fee=50,
        prize_pool=5000,
        registration_start_date=now,
        registration_end_date=now + timedelta(days=1),
        contest_start_date=now + timedelta(days=2),
    )
    values.update(overrides)
    return ContestCreateRequest(**values)


async def _audit_actions(db_session, admin) -> list[str]:
    rows = (await db_session.execute(
        select(AuditLog).where(AuditLog.admin_email == admin.email).order_by(AuditLog.created_at)
    )).scalars().all()
    return [row.action for row in rows]


@pytest.mark.asyncio
class TestContestAuthoring:
    """Creating and moderating contests."""

    async def test_manager_creates_draft_and_is_audited(self, db_session, admin_factory):
        """Should default to Draft for contest managers and log the creation."""
        admin = await admin_factory(AdminRole.CONTEST_MANAGER)

        contest = await ContestService(db_session).create_contest(admin, _create_request())

        assert contest.status == ContestStatus.DRAFT.value
        assert contest.created_by == admin.email
        assert contest.contest_id.startswith("c_")
        assert await _audit_actions(db_session, admin) == [AuditLogAction.CONTEST_CREATED.value]

    async def test_manager_can_choose_status(self, db_session, admin_factory):
        """Should honour an explicit initial status from a contest manager."""
        admin = await admin_factory(AdminRole.SUPER_ADMIN)

        contest = await ContestService(db_session).create_contest(
            admin, _create_request(status=ContestStatus.UPCOMING)
        )

        assert contest.status == ContestStatus.UPCOMING.value

    async def test_player_submission_waits_for_approval(self, db_session, user_factory):
        """Should force user-submitted contests into Pending Approval."""
        user = await user_factory()

        contest = await ContestService(db_session).create_contest(
            user, _create_request(status=ContestStatus.UPCOMING)
        )

        assert contest.status == ContestStatus.PENDING_APPROVAL.value

    async def test_finance_manager_cannot_pick_status(self, db_session, admin_factory):
        """Should treat admins without contest permission like players."""
        admin = await admin_factory(AdminRole.FINANCE_MANAGER)

        contest = await ContestService(db_session).create_contest(admin, _create_request())

        assert contest.status == ContestStatus.PENDING_APPROVAL.value

    async def test_approve_and_reject_are_audited(self, db_session, user_factory, admin_factory):
        """Should log approvals and rejections under their own actions."""
        admin = await admin_factory(AdminRole.CONTEST_MANAGER)
        user = await user_factory()
        service = ContestService(db_session)
        approved = await service.create_contest(user, _create_request(title="Approve me"))
        rejected = await service.create_contest(user, _create_request(title="Reject me"))

        await service.set_status(admin, approved.contest_id, ContestStatus.UPCOMING)
        await service.set_status(admin, rejected.contest_id, ContestStatus.REJECTED)

        assert approved.status == ContestStatus.UPCOMING.value
        assert rejected.status == ContestStatus.REJECTED.value
        assert await _audit_actions(db_session, admin) == [
            AuditLogAction.CONTEST_APPROVED.value,
            AuditLogAction.CONTEST_REJECTED.value,
        ]

    async def test_backwards_transition_is_refused(self, db_session, admin_factory, contest_factory):
        """Should refuse to reopen a finished contest."""
        admin = await admin_factory()
        contest = await contest_factory(status=ContestStatus.FINISHED.value)

        with pytest.raises(ContestTransitionError):
            await ContestService(db_session).set_status(admin, contest.contest_id, ContestStatus.LIVE)

    async def test_update_changes_fields(self, db_session, admin_factory, contest_factory):
        """Should apply provided fields only."""
        admin = await admin_factory()
        contest = await contest_factory()

        updated = await ContestService(db_session).update_contest(
            admin, contest.contest_id, ContestUpdateRequest(title="Renamed", entry_fee=25)
        )

        assert updated.title == "Renamed"
        assert updated.entry_fee == 25
        assert updated.category == "General Knowledge"
        assert await _audit_actions(db_session, admin) == [AuditLogAction.CONTEST_UPDATED.value]

    async def test_update_rejects_bad_schedule(self, db_session, admin_factory, contest_factory):
        """Should refuse a registration window that closes after the start."""
        admin = await admin_factory()
        contest = await contest_factory()

        with pytest.raises(ContestError):
            await ContestService(db_session).update_contest(
                admin,
                contest.contest_id,
                ContestUpdateRequest(registration_end_date=contest.contest_start_date + timedelta(hours=1)),
            )

    async def test_delete_contest(self, db_session, admin_factory, contest_factory):
        """Should remove the contest and log the deletion."""
        admin = await admin_factory()
        contest = await contest_factory()
        service = ContestService(db_session)

        await service.delete_contest(admin, contest.contest_id)

        with pytest.raises(ContestNotFoundError):
            await service.get_contest(contest.contest_id)
        assert await _audit_actions(db_session, admin) == [AuditLogAction.CONTEST_DELETED.value]

    async def test_hidden_statuses_are_not_listed(self, db_session, contest_factory):
        """Should hide drafts and pending contests from the public listing."""
        draft = await contest_factory(status=ContestStatus.DRAFT.value)
        visible = await contest_factory()
        service = ContestService(db_session)

        public_ids = {c.contest_id for c in await service.list_contests()}
        all_ids = {c.contest_id for c in await service.list_contests(include_hidden=True)}

        assert visible.contest_id in public_ids
        assert draft.contest_id not in public_ids
        assert draft.contest_id in all_ids


@pytest.mark.asyncio
class TestRegistration:
    """Joining contests and paying entry fees."""

    async def test_register_charges_entry_fee(self, db_session, user_factory, contest_factory):
        """Should debit the fee once and add the user to the participants."""
        user = await user_factory(balance=1000)
        contest = await contest_factory(entry_fee=100)

        updated = await ContestService(db_session).register_for_contest(user, contest.contest_id)

        assert user.email in updated.participants
        wallet = await WalletService(db_session).get_wallet(user.email)
        assert wallet.wallet_balance == 900
        assert wallet.transactions[0].type == TransactionType.ENTRY_FEE
        assert wallet.transactions[0].description == f"Entry for {contest.title}"
        assert calculate_balance(wallet.transactions) == 900

    async def test_free_contest_creates_no_transaction(self, db_session, user_factory, contest_factory):
        """Should not record a zero entry fee."""
        user = await user_factory()
        contest = await contest_factory(entry_fee=0)

        await ContestService(db_session).register_for_contest(user, contest.contest_id)

        wallet = await WalletService(db_session).get_wallet(user.email)
        assert len(wallet.transactions) == 1
        assert wallet.wallet_balance == 500

    async def test_insufficient_funds_leaves_wallet_untouched(self, db_session, user_factory, contest_factory):
        """Should reject a 1000 fee for a 500 balance before charging anything."""
        user = await user_factory()
        contest = await contest_factory(entry_fee=1000)

        with pytest.raises(ContestError, match="Insufficient funds"):
            await ContestService(db_session).register_for_contest(user, contest.contest_id)

        wallet = await WalletService(db_session).get_wallet(user.email)
        assert wallet.wallet_balance == 500
        assert len(wallet.transactions) == 1
        refreshed = await ContestService(db_session).get_contest(contest.contest_id)
        assert user.email not in refreshed.participants

    async def test_double_registration_is_refused(self, db_session, user_factory, contest_factory):
        """Should charge the fee only once."""
        user = await user_factory(balance=1000)
        contest = await contest_factory(entry_fee=100)
        service = ContestService(db_session)
        await service.register_for_contest(user, contest.contest_id)

        with pytest.raises(ContestError, match="already registered"):
            await service.register_for_contest(user, contest.contest_id)

        assert (await WalletService(db_session).get_wallet(user.email)).wallet_balance == 900

    async def test_registration_window_enforced(self, db_session, user_factory, contest_factory):
        """Should refuse registration before the window opens."""
        now = utc_now()
        user = await user_factory()
        contest = await contest_factory(
            registration_start_date=now + timedelta(hours=1),
            registration_end_date=now + timedelta(hours=2),
            contest_start_date=now + timedelta(hours=3),
        )

        with pytest.raises(ContestError, match="not currently open"):
            await ContestService(db_session).register_for_contest(user, contest.contest_id)

    async def test_only_upcoming_contests_accept_players(self, db_session, user_factory, contest_factory):
        """Should refuse registration for contests that are not Upcoming."""
        user = await user_factory()
        contest = await contest_factory(status=ContestStatus.LIVE.value)

        with pytest.raises(ContestError, match="not open for registration"):
            await ContestService(db_session).register_for_contest(user, contest.contest_id)

    async def test_full_contest_is_refused(self, db_session, user_factory, contest_factory):
        """Should respect the participant cap."""
        user = await user_factory()
        contest = await contest_factory(max_participants=1, participants=["someone@example.com"])

        with pytest.raises(ContestError, match="maximum number of participants"):
            await ContestService(db_session).register_for_contest(user, contest.contest_id)

    async def test_banned_user_is_refused(self, db_session, user_factory, contest_factory):
        """Should keep suspended accounts out of contests."""
        user = await user_factory()
        user.banned = True
        await db_session.commit()
        contest = await contest_factory()

        with pytest.raises(ContestError, match="suspended"):
            await ContestService(db_session).register_for_contest(user, contest.contest_id)

    async def test_unknown_contest(self, db_session, user_factory):
        """Should report a missing contest."""
        user = await user_factory()

        with pytest.raises(ContestNotFoundError):
            await ContestService(db_session).register_for_contest(user, "c_missing")


@pytest.mark.asyncio
class TestCancellation:
    """Cancelling contests refunds entry fees."""

    async def test_cancel_refunds_every_participant(
        self, db_session, user_factory, admin_factory, contest_factory
    ):
        """Should return each participant's fee and log the cancellation."""
        admin = await admin_factory(AdminRole.CONTEST_MANAGER)
        first = await user_factory(balance=1000)
        second = await user_factory(balance=1000)
        contest = await contest_factory(entry_fee=200)
        service = ContestService(db_session)
        await service.register_for_contest(first, contest.contest_id)
        await service.register_for_contest(second, contest.contest_id)

        cancelled = await service.cancel_contest(admin, contest.contest_id)

        assert cancelled.status == ContestStatus.CANCELLED.value
        assert cancelled.participants == []
        for user in (first, second):
            wallet = await WalletService(db_session).get_wallet(user.email)
            assert wallet.wallet_balance == 1000
            assert wallet.transactions[0].type == TransactionType.REFUND
            assert wallet.transactions[0].description == f"Refund for cancelled contest: {contest.title}"
        assert await _audit_actions(db_session, admin) == [AuditLogAction.CONTEST_CANCELLED.value]

    async def test_cancel_through_update_refunds(self, db_session, user_factory, admin_factory, contest_factory):
        """Should refund when the status is changed to Cancelled by an update."""
        admin = await admin_factory()
        user = await user_factory(balance=300)
        contest = await contest_factory(entry_fee=300)
        service = ContestService(db_session)
        await service.register_for_contest(user, contest.contest_id)

        await service.set_status(admin, contest.contest_id, ContestStatus.CANCELLED)

        assert (await WalletService(db_session).get_wallet(user.email)).wallet_balance == 300

    async def test_live_contest_cannot_be_cancelled(self, db_session, admin_factory, contest_factory):
        """Should refuse to cancel a contest that is already running."""
        admin = await admin_factory()
        contest = await contest_factory(status=ContestStatus.LIVE.value)

        with pytest.raises(ContestTransitionError):
            await ContestService(db_session).cancel_contest(admin, contest.contest_id)


@pytest.mark.asyncio
class TestResults:
    """Submitting game results."""

    async def _live_contest(self, contest_factory, user, **overrides):
        now = utc_now()
        values = dict(
            status=ContestStatus.LIVE.value,
            registration_start_date=now - timedelta(hours=3),
            registration_end_date=now - timedelta(hours=2),
            contest_start_date=now - timedelta(minutes=5),
            participants=[user.email],
        )
        values.update(overrides)
        return await contest_factory(**values)

    async def test_kbc_prize_is_credited(self, db_session, user_factory, contest_factory):
        """Should pay out the prize reached and award win points."""
        user = await user_factory()
        contest = await self._live_contest(contest_factory, user)

        result, outcome, points = await ContestService(db_session).submit_results(
            user, contest.contest_id, KBCResults(format="KBC", score=1000)
        )

        assert result.score == 1000
        assert outcome.is_win is True
        assert points == 40
        assert user.total_points == 40
        wallet = await WalletService(db_session).get_wallet(user.email)
        assert wallet.wallet_balance == 1500
        assert wallet.transactions[0].type == TransactionType.WIN
        assert wallet.transactions[0].description == f"Prize from {contest.title}"

    async def test_kbc_zero_score_is_a_loss(self, db_session, user_factory, contest_factory):
        """Should record a loss without any prize."""
        user = await user_factory()
        contest = await self._live_contest(contest_factory, user)

        _, outcome, points = await ContestService(db_session).submit_results(
            user, contest.contest_id, KBCResults(format="KBC", score=0)
        )

        assert outcome.is_win is False
        assert points == -5
        assert user.total_points == 0
        assert user.wallet_balance == 500

    async def test_kbc_score_must_be_on_prize_ladder(self, db_session, user_factory, contest_factory):
        """Should refuse prize amounts that are not on the ladder."""
        user = await user_factory()
        contest = await self._live_contest(contest_factory, user)

        with pytest.raises(ContestError, match="prize ladder"):
            await ContestService(db_session).submit_results(
                user, contest.contest_id, KBCResults(format="KBC", score=12345)
            )

    async def test_second_submission_is_refused(self, db_session, user_factory, contest_factory):
        """Should pay prizes and award points only once."""
        user = await user_factory()
        contest = await self._live_contest(contest_factory, user)
        service = ContestService(db_session)
        await service.submit_results(user, contest.contest_id, KBCResults(format="KBC", score=500))

        with pytest.raises(ContestError, match="already submitted"):
            await service.submit_results(user, contest.contest_id, KBCResults(format="KBC", score=1000))

        assert user.wallet_balance == 1000
        assert user.total_points == 40

    async def test_non_participant_is_refused(self, db_session, user_factory, contest_factory):
        """Should require registration before submitting."""
        player = await user_factory()
        outsider = await user_factory()
        contest = await self._live_contest(contest_factory, player)

        with pytest.raises(ContestError, match="not registered"):
            await ContestService(db_session).submit_results(
                outsider, contest.contest_id, KBCResults(format="KBC", score=0)
            )

    async def test_upcoming_contest_is_refused(self, db_session, user_factory, contest_factory):
        """Should only accept results while the contest is running or finished."""
        user = await user_factory()
        contest = await contest_factory(participants=[user.email])

        with pytest.raises(ContestError, match="not in progress"):
            await ContestService(db_session).submit_results(
                user, contest.contest_id, KBCResults(format="KBC", score=0)
            )

    async def test_wrong_format_is_refused(self, db_session, user_factory, contest_factory):
        """Should require results matching the contest format."""
        user = await user_factory()
        contest = await self._live_contest(contest_factory, user)

        with pytest.raises(ContestError, match="KBC"):
            await ContestService(db_session).submit_results(
                user, contest.contest_id, FastestFingerResults(format="FastestFinger", score=5, time=12.5)
            )

    async def test_fastest_finger_leaderboard(self, db_session, user_factory, contest_factory):
        """Should rank by score and then by time, leaving points for the final standings."""
        first = await user_factory(name="Quick")
        second = await user_factory(name="Slow")
        contest = await self._live_contest(
            contest_factory, first,
            format=ContestFormat.FASTEST_FINGER.value,
            participants=[first.email, second.email],
            difficulty="Hard",
        )
        service = ContestService(db_session)

        await service.submit_results(second, contest.contest_id,
                                     FastestFingerResults(format="FastestFinger", score=8, time=40.0))
        _, outcome, points = await service.submit_results(
            first, contest.contest_id, FastestFingerResults(format="FastestFinger", score=8, time=25.0)
        )
        leaderboard = await service.get_leaderboard(contest.contest_id)

        assert outcome is None
        assert points is None
        assert first.total_points == 0
        assert first.wallet_balance == 500
        assert [(e.position, e.name) for e in leaderboard] == [(1, "Quick"), (2, "Slow")]

    async def test_fastest_finger_points_follow_final_standings(
        self, db_session, user_factory, admin_factory, contest_factory
    ):
        """Should settle wins by final place, not by submission order."""
        admin = await admin_factory()
        early = await user_factory(name="Early")
        others = [await user_factory() for _ in range(3)]
        contest = await self._live_contest(
            contest_factory, early,
            format=ContestFormat.FASTEST_FINGER.value,
            participants=[early.email, *(u.email for u in others)],
        )
        service = ContestService(db_session)

        _, outcome, points = await service.submit_results(
            early, contest.contest_id, FastestFingerResults(format="FastestFinger", score=0, time=60.0)
        )
        for user, time in zip(others, (30.0, 45.0, 50.0)):
            await service.submit_results(
                user, contest.contest_id, FastestFingerResults(format="FastestFinger", score=10, time=time)
            )
        assert outcome is None and points is None

        await service.set_status(admin, contest.contest_id, ContestStatus.FINISHED)

        rows = (await db_session.execute(
            select(ContestHistory).where(ContestHistory.contest_id == contest.contest_id)
        )).scalars().all()
        earned = {row.user_email: row.points_earned for row in rows}
        assert earned[early.email] == -5
        assert all(earned[u.email] == 40 for u in others)
        assert early.total_points == 0
        assert [u.total_points for u in others] == [40, 40, 40]

        # A second settlement finds nothing left to do
        assert await RankingService(db_session).settle_fastest_finger(to_snapshot(contest)) == {}
        assert [u.total_points for u in others] == [40, 40, 40]

    async def test_fastest_finger_late_submission_is_settled(self, db_session, user_factory, contest_factory):
        """Should settle a submission that arrives after the contest finished."""
        first = await user_factory()
        late = await user_factory()
        contest = await self._live_contest(
            contest_factory, first,
            status=ContestStatus.FINISHED.value,
            format=ContestFormat.FASTEST_FINGER.value,
            participants=[first.email, late.email],
            results=[{"user_id": first.email, "name": first.name, "score": 6, "time": 20.0}],
        )

        _, outcome, points = await ContestService(db_session).submit_results(
            late, contest.contest_id, FastestFingerResults(format="FastestFinger", score=4, time=10.0)
        )

        assert outcome.is_win is True
        assert points == 40
        assert late.total_points == 40
        assert first.total_points == 40


@pytest.mark.asyncio
class TestMoneyConsistency:
    """Entry fees, refunds and pending withdrawals stay in agreement."""

    async def test_entry_fee_is_locked_after_registration(
        self, db_session, user_factory, admin_factory, contest_factory
    ):
        """Should refuse fee changes once paid so a refund returns exactly the fee charged."""
        admin = await admin_factory()
        user = await user_factory()
        contest = await contest_factory(entry_fee=50)
        service = ContestService(db_session)
        await service.register_for_contest(user, contest.contest_id)

        with pytest.raises(ContestError, match="entry fee cannot change"):
            await service.update_contest(admin, contest.contest_id, ContestUpdateRequest(entry_fee=5000))
        await service.cancel_contest(admin, contest.contest_id)

        wallet = await WalletService(db_session).get_wallet(user.email)
        assert wallet.wallet_balance == 500
        assert wallet.transactions[0].amount == 50

    async def test_entry_fee_respects_pending_withdrawals(
        self, db_session, user_factory, admin_factory, contest_factory
    ):
        """Should not spend funds already promised to a pending withdrawal."""
        admin = await admin_factory(AdminRole.FINANCE_MANAGER)
        user = await user_factory()
        contest = await contest_factory(entry_fee=500)
        wallet_service = WalletService(db_session)
        await wallet_service.request_withdrawal(user.email, 500)

        with pytest.raises(ContestError, match="Insufficient funds. You need \\$500 to enter."):
            await ContestService(db_session).register_for_contest(user, contest.contest_id)

        pending = (await wallet_service.get_wallet(user.email)).transactions[0]
        await wallet_service.approve_withdrawal(admin, pending.id)
        assert (await wallet_service.get_wallet(user.email)).wallet_balance == 0


@pytest.mark.asyncio
class TestTimerUpdates:
    """Partial updates keep the timer settings consistent."""

    async def test_total_timer_requires_total_time(self, db_session, admin_factory, contest_factory):
        """Should refuse switching to a total-contest timer without a total time."""
        admin = await admin_factory()
        contest = await contest_factory()

        with pytest.raises(ContestError, match="Total contest time"):
            await ContestService(db_session).update_contest(
                admin, contest.contest_id, ContestUpdateRequest(timer_type=TimerType.TOTAL_CONTEST)
            )

    async def test_total_time_cannot_be_cleared(self, db_session, admin_factory, contest_factory):
        """Should refuse clearing the total time of a total-contest timer."""
        admin = await admin_factory()
        contest = await contest_factory(timer_type=TimerType.TOTAL_CONTEST.value, total_contest_time=300)

        with pytest.raises(ContestError, match="Total contest time"):
            await ContestService(db_session).update_contest(
                admin, contest.contest_id, ContestUpdateRequest(total_contest_time=None)
            )
