"""Tests for sample data generators."""

from datetime import datetime, timedelta
from decimal import Decimal

from pledge_ledger.generators import CustomerGenerator, PledgeGenerator
from pledge_ledger.models import PledgeStatus

NOW = datetime(2024, 1, 1, 10, 0, 0)


class TestCustomerGenerator:
    """Tests for CustomerGenerator."""

    def test_generate_customer(self) -> None:
        customer = CustomerGenerator(seed=42).generate()

        assert customer.customer_id is not None
        assert len(customer.phone) == 10
        assert customer.phone.isdigit()
        assert customer.name
        assert "\n" not in customer.address
        assert customer.is_active is True

    def test_generate_batch_unique_ids(self) -> None:
        customers = list(CustomerGenerator(seed=42).generate_batch(5))

        assert len(customers) == 5
        assert len({c.customer_id for c in customers}) == 5

    def test_seed_reproducible(self) -> None:
        first = CustomerGenerator(seed=7).generate()
        second = CustomerGenerator(seed=7).generate()
        assert first.name == second.name
        assert first.phone == second.phone


class TestPledgeGenerator:
    """Tests for PledgeGenerator."""

    def test_generate_request(self) -> None:
        request = PledgeGenerator(seed=42).generate("cust-001", NOW)

        assert request.customer_id == "cust-001"
        assert request.item_type in PledgeGenerator.ITEMS
        assert request.status == PledgeStatus.ACTIVE
        assert request.amount >= Decimal("500")
        assert request.amount % 100 == 0
        assert request.deadline - NOW in {timedelta(days=d) for d in (90, 180, 365)}
        assert request.item_photo is not None

    def test_purity_matches_item(self) -> None:
        gen = PledgeGenerator(seed=3)
        for _ in range(20):
            request = gen.generate("cust-001", NOW)
            purities = PledgeGenerator.ITEMS[request.item_type][0]
            assert request.purity in purities

    def test_explicit_rates_when_present(self) -> None:
        gen = PledgeGenerator(seed=11)
        rates = [gen.generate("cust-001", NOW).interest_rate for _ in range(50)]

        assert None in rates
        assert {r for r in rates if r is not None} <= set(PledgeGenerator.EXPLICIT_RATES)

    def test_generated_request_creates_pledge(self, service, customer, clock) -> None:
        request = PledgeGenerator(seed=42).generate(customer.customer_id, clock.now)

        view = service.create_pledge(request)

        assert view.monthly_rate_percent > 0
        assert view.remaining_amount > view.principal


class TestBaseGeneratorHelpers:
    """Tests for the shared draw helpers."""

    def test_days_before(self) -> None:
        gen = CustomerGenerator(seed=1)
        for _ in range(20):
            value = gen.days_before(NOW, 10)
            assert NOW - timedelta(days=10) <= value <= NOW

    def test_decimal_between(self) -> None:
        gen = PledgeGenerator(seed=1)
        for _ in range(20):
            value = gen.decimal_between(2, 15)
            assert Decimal("2") <= value <= Decimal("15")
            assert value.as_tuple().exponent == -3
