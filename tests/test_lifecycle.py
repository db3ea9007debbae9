"""Tests for the pledge lifecycle service."""

import threading
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from pledge_ledger.config import NotificationConfig
from pledge_ledger.engine.lifecycle import PLEDGE_CREATED, PLEDGE_UPDATED, PledgeService
from pledge_ledger.exceptions import (
    EntityNotFoundError,
    InvalidEntityStateError,
    InvalidInputError,
    MissingPrerequisiteError,
    ReferentialIntegrityError,
)
from pledge_ledger.models import PledgeRequest, PledgeStatus
from pledge_ledger.money import daily_interest
from pledge_ledger.sinks import NotificationDispatcher


def _request(customer_id: str = "cust-test-001", **overrides) -> PledgeRequest:
    values = {
        "customer_id": customer_id,
        "amount": Decimal("10000"),
        "interest_rate": Decimal("2"),
        "title": "Gold chain",
        "item_type": "GOLD_CHAIN",
        "weight": "12.5",
        "purity": "22K",
    }
    values.update(overrides)
    return PledgeRequest(**values)


class TestCreatePledge:
    """Tests for pledge creation."""

    def test_create_sets_timestamps(self, service, customer, clock) -> None:
        view = service.create_pledge(_request())

        assert view.pledge_id is not None
        assert view.created_at == clock.now
        assert view.last_interest_accrued_at == clock.now
        assert view.status == PledgeStatus.ACTIVE
        assert view.principal == Decimal("10000")
        assert view.weight == Decimal("12.5")

    def test_new_pledge_owes_first_month(self, service, customer) -> None:
        view = service.create_pledge(_request())
        assert view.remaining_amount == Decimal("10200")

    @pytest.mark.parametrize(
        "amount,expected_rate",
        [("5000", Decimal("3")), ("10000", Decimal("3")), ("20000", Decimal("2"))],
    )
    def test_rate_defaults_from_table(self, service, customer, amount, expected_rate) -> None:
        view = service.create_pledge(_request(amount=amount, interest_rate=None))
        assert view.monthly_rate_percent == expected_rate

    def test_zero_rate_falls_back_to_table(self, service, customer) -> None:
        view = service.create_pledge(_request(amount="5000", interest_rate="0"))
        assert view.monthly_rate_percent == Decimal("3")

    def test_explicit_rate_wins(self, service, customer) -> None:
        view = service.create_pledge(_request(amount="5000", interest_rate="1.75"))
        assert view.monthly_rate_percent == Decimal("1.75")

    def test_status_is_coerced(self, service, customer) -> None:
        view = service.create_pledge(_request(status="partially_paid"))
        assert view.status == PledgeStatus.PARTIALLY_PAID

    def test_invalid_status_rejected(self, service, store, customer) -> None:
        with pytest.raises(InvalidInputError):
            service.create_pledge(_request(status="PENDING"))
        assert store.pledges == {}

    def test_missing_customer_id(self, service) -> None:
        with pytest.raises(InvalidInputError):
            service.create_pledge(_request(customer_id=None))

    def test_unknown_customer(self, service, store, customer) -> None:
        with pytest.raises(ReferentialIntegrityError):
            service.create_pledge(_request(customer_id="nobody"))
        assert store.pledges == {}

    def test_deadline_must_follow_creation(self, service, customer, clock) -> None:
        with pytest.raises(InvalidInputError, match="Deadline"):
            service.create_pledge(_request(deadline=clock.now))

    def test_future_deadline_accepted(self, service, customer, clock) -> None:
        deadline = clock.now + timedelta(days=180)
        view = service.create_pledge(_request(deadline=deadline))
        assert view.deadline == deadline


class TestUpdatePledge:
    """Tests for pledge edits and the rate-change snapshot."""

    def test_rate_change_capitalizes_old_rate(self, service, customer, clock, t0) -> None:
        pledge_id = service.create_pledge(_request()).pledge_id
        clock.advance(days=15)

        view = service.update_pledge(pledge_id, _request(amount=None, interest_rate="3"))

        # 10000 * 2% / 30 * 15
        assert view.principal == Decimal("10100")
        assert view.monthly_rate_percent == Decimal("3")
        assert view.last_interest_accrued_at == t0 + timedelta(days=15)

    def test_snapshot_uses_last_accrual_instant(self, service, customer, clock) -> None:
        pledge_id = service.create_pledge(_request()).pledge_id
        clock.advance(days=15)
        service.update_pledge(pledge_id, _request(amount=None, interest_rate="3"))
        clock.advance(days=10)

        view = service.update_pledge(pledge_id, _request(amount=None, interest_rate="2"))

        # 10100 * 3% / 30 * 10
        assert view.principal == Decimal("10201")

    def test_same_rate_does_not_snapshot(self, service, customer, clock, t0) -> None:
        pledge_id = service.create_pledge(_request()).pledge_id
        clock.advance(days=15)

        view = service.update_pledge(pledge_id, _request(amount=None, interest_rate="2"))

        assert view.principal == Decimal("10000")
        assert view.last_interest_accrued_at == t0

    def test_missing_rate_keeps_stored_rate(self, service, customer, clock) -> None:
        pledge_id = service.create_pledge(_request()).pledge_id
        clock.advance(days=15)

        view = service.update_pledge(pledge_id, _request(amount=None, interest_rate=None))

        assert view.monthly_rate_percent == Decimal("2")
        assert view.principal == Decimal("10000")

    def test_positive_amount_overwrites_principal(self, service, customer) -> None:
        pledge_id = service.create_pledge(_request()).pledge_id
        view = service.update_pledge(pledge_id, _request(amount="7500"))
        assert view.principal == Decimal("7500")

    def test_details_overwritten_verbatim(self, service, customer) -> None:
        pledge_id = service.create_pledge(_request()).pledge_id
        view = service.update_pledge(pledge_id, _request(title="Bangle", purity=None))
        assert view.title == "Bangle"
        assert view.purity is None

    def test_status_kept_when_omitted(self, service, store, customer) -> None:
        pledge_id = service.create_pledge(_request(status=PledgeStatus.DEFAULTED)).pledge_id
        view = service.update_pledge(pledge_id, _request())
        assert view.status == PledgeStatus.DEFAULTED

    def test_status_replaced_when_given(self, service, customer) -> None:
        pledge_id = service.create_pledge(_request()).pledge_id
        view = service.update_pledge(pledge_id, _request(status="completed"))
        assert view.status == PledgeStatus.COMPLETED

    def test_unknown_pledge(self, service) -> None:
        with pytest.raises(EntityNotFoundError):
            service.update_pledge("missing", _request())

    def test_edit_reads_pledge_for_update(self, service, store, customer, monkeypatch) -> None:
        pledge_id = service.create_pledge(_request()).pledge_id
        locked = []
        read = store.find_pledge_for_update

        def tracking_read(pid):
            locked.append(pid)
            return read(pid)

        monkeypatch.setattr(store, "find_pledge_for_update", tracking_read)

        service.update_pledge(pledge_id, _request(interest_rate="3"))

        assert locked == [pledge_id]

    def test_deadline_checked_against_creation(self, service, customer, clock, t0) -> None:
        pledge_id = service.create_pledge(_request()).pledge_id
        clock.advance(days=5)
        with pytest.raises(InvalidInputError):
            service.update_pledge(pledge_id, _request(deadline=t0 - timedelta(days=1)))


class TestPayments:
    """Tests for the service's payment entry points."""

    def test_apply_payment_and_history(self, service, customer, clock) -> None:
        pledge_id = service.create_pledge(_request(amount="500", interest_rate="2")).pledge_id
        clock.advance(days=5)

        outcome = service.apply_payment(pledge_id, 500)

        assert outcome.pledge.status == PledgeStatus.PARTIALLY_PAID
        assert service.total_paid(pledge_id) == Decimal("500")
        history = service.list_payments(pledge_id)
        assert [p.payment_id for p in history] == [outcome.payment.payment_id]
        assert service.get_payment(outcome.payment.payment_id).amount == Decimal("500")

    def test_record_payment_returns_view(self, service, customer) -> None:
        pledge_id = service.create_pledge(_request(amount="1000")).pledge_id

        view = service.record_payment(pledge_id, 1000)

        assert view.status == PledgeStatus.CLOSED
        assert view.principal == 0

    def test_record_overpayment_rejected(self, service, customer) -> None:
        pledge_id = service.create_pledge(_request(amount="1000")).pledge_id
        with pytest.raises(InvalidEntityStateError):
            service.record_payment(pledge_id, 1500)
        assert service.get_pledge(pledge_id).principal == Decimal("1000")

    def test_get_unknown_payment(self, service) -> None:
        with pytest.raises(EntityNotFoundError):
            service.get_payment("missing")

    def test_delete_payment(self, service, customer) -> None:
        pledge_id = service.create_pledge(_request()).pledge_id
        payment_id = service.apply_payment(pledge_id, 100).payment.payment_id

        service.delete_payment(payment_id)

        assert service.list_payments(pledge_id) == []


class TestReconcile:
    """Tests for the auto-close sweep."""

    def test_closes_exhausted_active_pledges(self, service, store, make_pledge) -> None:
        exhausted = make_pledge(principal=0)
        open_pledge = make_pledge(principal=500)

        closed = service.reconcile()

        assert closed == [exhausted.pledge_id]
        assert store.find_pledge_by_id(exhausted.pledge_id).status == PledgeStatus.CLOSED
        assert store.find_pledge_by_id(open_pledge.pledge_id).status == PledgeStatus.ACTIVE

    def test_idempotent(self, service, make_pledge) -> None:
        make_pledge(principal=0)
        assert len(service.reconcile()) == 1
        assert service.reconcile() == []

    def test_only_active_pledges(self, service, store, make_pledge) -> None:
        partial = make_pledge(principal=0, status=PledgeStatus.PARTIALLY_PAID)
        assert service.reconcile() == []
        assert store.find_pledge_by_id(partial.pledge_id).status == PledgeStatus.PARTIALLY_PAID

    def test_listing_heals(self, service, make_pledge, customer) -> None:
        pledge = make_pledge(principal=0)

        views = service.list_pledges()
        assert [v.status for v in views] == [PledgeStatus.CLOSED]

        by_customer = service.list_pledges_for_customer(customer.customer_id)
        assert by_customer[0].pledge_id == pledge.pledge_id


class TestReads:
    """Tests for projections and the strict report."""

    def test_get_pledge_projects_remaining(self, service, make_pledge, clock) -> None:
        pledge = make_pledge(principal=10000, rate=2)
        clock.advance(days=40)

        view = service.get_pledge(pledge.pledge_id)

        assert view.remaining_amount.quantize(Decimal("0.01")) == Decimal("10266.67")
        # Projection never persists
        assert service.get_pledge(pledge.pledge_id).principal == Decimal("10000")

    def test_get_unknown_pledge(self, service) -> None:
        with pytest.raises(EntityNotFoundError):
            service.get_pledge("missing")

    def test_strict_report(self, service, make_pledge, clock) -> None:
        pledge = make_pledge(principal=10000, rate=2)
        clock.advance(days=10)

        assert service.calculate_interest(pledge.pledge_id) == Decimal("200")
        assert service.total_amount(pledge.pledge_id) == Decimal("10200")

    def test_strict_report_requires_creation_date(self, service, make_pledge) -> None:
        pledge = make_pledge(created_at=None)

        with pytest.raises(MissingPrerequisiteError):
            service.calculate_interest(pledge.pledge_id)
        # Lenient read degrades instead
        assert service.get_pledge(pledge.pledge_id).remaining_amount is None

    def test_daily_interest(self, service, make_pledge, clock) -> None:
        pledge = make_pledge(principal=10000, rate=2)
        clock.advance(days=45)

        # Independent of elapsed time
        assert service.daily_interest(pledge.pledge_id) == daily_interest(Decimal("10000"), Decimal("2"))

    def test_daily_interest_ignores_creation_date(self, service, make_pledge) -> None:
        pledge = make_pledge(principal=3000, rate=3, created_at=None)

        assert service.daily_interest(pledge.pledge_id) == Decimal("3")

    def test_daily_interest_requires_rate(self, service, make_pledge) -> None:
        pledge = make_pledge(rate=None)

        with pytest.raises(MissingPrerequisiteError):
            service.daily_interest(pledge.pledge_id)

    def test_daily_interest_unknown_pledge(self, service) -> None:
        with pytest.raises(EntityNotFoundError):
            service.daily_interest("missing")

    def test_delete_pledge_cascades(self, service, store, customer) -> None:
        pledge_id = service.create_pledge(_request()).pledge_id
        service.apply_payment(pledge_id, 100)

        service.delete_pledge(pledge_id)

        assert store.pledges == {}
        assert store.payments == {}


class TestConcurrentAccess:
    """Tests for service reads racing writes from another thread."""

    def test_reconcile_while_creating(self, service, store, customer) -> None:
        errors: list[Exception] = []

        def create_pledges() -> None:
            try:
                for _ in range(300):
                    service.create_pledge(_request())
            except Exception as exc:
                errors.append(exc)

        writer = threading.Thread(target=create_pledges)
        writer.start()
        while writer.is_alive():
            service.reconcile()
            store.find_pledges_by_customer_id(customer.customer_id)
        writer.join()

        assert errors == []
        assert len(store.find_all_pledges()) == 300

    def test_payment_reads_pledge_for_update(self, service, store, make_pledge, monkeypatch) -> None:
        pledge = make_pledge()
        locked = []
        read = store.find_pledge_for_update

        def tracking_read(pid):
            locked.append(pid)
            return read(pid)

        monkeypatch.setattr(store, "find_pledge_for_update", tracking_read)

        service.apply_payment(pledge.pledge_id, 100)
        service.record_payment(pledge.pledge_id, 100)

        assert locked == [pledge.pledge_id, pledge.pledge_id]

    def test_concurrent_payments_are_not_lost(self, service, store, make_pledge) -> None:
        pledge = make_pledge(principal=10000, rate=2)
        errors: list[Exception] = []

        def pay() -> None:
            try:
                for _ in range(25):
                    service.record_payment(pledge.pledge_id, 10)
            except Exception as exc:
                errors.append(exc)

        payers = [threading.Thread(target=pay) for _ in range(4)]
        for payer in payers:
            payer.start()
        for payer in payers:
            payer.join()

        assert errors == []
        # 100 payments of 10 against 10000
        assert store.find_pledge_by_id(pledge.pledge_id).principal == Decimal("9000")
        assert store.sum_amount_by_pledge_id(pledge.pledge_id) == Decimal("1000")


class TestNotifications:
    """Tests for best-effort notifications around create and edit."""

    @pytest.fixture
    def notifier(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture
    def notified_service(self, store, rate_table, clock, notifier) -> PledgeService:
        dispatcher = NotificationDispatcher(notifier, NotificationConfig(recipient="owner@example.com"), clock)
        return PledgeService(store, rate_table, notifier=dispatcher, clock=clock)

    def test_create_and_edit_notify(self, notified_service, notifier, customer) -> None:
        pledge_id = notified_service.create_pledge(_request(item_photo="https://img/1.jpg")).pledge_id
        notified_service.update_pledge(pledge_id, _request(amount="9000"))

        events = [call.args[0] for call in notifier.send.call_args_list]
        assert [e.event_type for e in events] == [PLEDGE_CREATED, PLEDGE_UPDATED]
        assert events[0].subject == pledge_id
        assert events[0].data["item_photo"] == "https://img/1.jpg"
        assert events[0].data["recipient"] == "owner@example.com"
        assert events[1].data["principal"] == "9000"

    def test_notifier_failure_does_not_fail_create(self, notified_service, notifier, store, customer) -> None:
        notifier.send.side_effect = RuntimeError("smtp down")

        view = notified_service.create_pledge(_request())

        assert store.find_pledge_by_id(view.pledge_id) is not None
