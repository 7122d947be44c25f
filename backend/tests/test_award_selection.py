import random
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.errors import NoEligibleDonorsError
from app.models.coupon import Coupon, CouponStatus
from app.services import awards as awards_service
from factories import create_coupon, create_fundraiser, utcnow


def test_win_probability_rounds_half_up() -> None:
    assert awards_service.win_probability(Decimal("1"), Decimal("8")) == Decimal("12.50")
    assert awards_service.win_probability(Decimal("1"), Decimal("3")) == Decimal("33.33")
    assert awards_service.win_probability(Decimal("2"), Decimal("3")) == Decimal("66.67")
    assert awards_service.win_probability(Decimal("1"), Decimal("800")) == Decimal("0.13")
    assert awards_service.win_probability(Decimal("5"), Decimal("0")) == Decimal("0.00")


def _donor(code: str, amount: str) -> awards_service.WeightedDonor:
    return awards_service.WeightedDonor(
        coupon_id=None,
        code=code,
        donor_name=code,
        donor_email=f"{code.lower()}@example.com",
        donation_amount=Decimal(amount),
        currency="EUR",
        probability=Decimal("0"),
        created_at=utcnow(),
    )


class _FixedRandom(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__()
        self._value = value

    def random(self) -> float:
        return self._value


def test_draw_weighted_walks_cumulative_sum() -> None:
    donors = [_donor("A", "60"), _donor("B", "30"), _donor("C", "10")]
    total = Decimal("100")
    assert awards_service.draw_weighted(donors, total, _FixedRandom(0.0)).code == "A"
    assert awards_service.draw_weighted(donors, total, _FixedRandom(0.6)).code == "A"
    assert awards_service.draw_weighted(donors, total, _FixedRandom(0.61)).code == "B"
    assert awards_service.draw_weighted(donors, total, _FixedRandom(0.95)).code == "C"
    assert awards_service.draw_weighted(donors, total, _FixedRandom(0.9999999)).code == "C"


def test_draw_weighted_is_biased_toward_larger_donations() -> None:
    donors = [_donor("BIG", "90"), _donor("SMALL", "10")]
    rng = random.Random(20240601)
    wins = {"BIG": 0, "SMALL": 0}
    for _ in range(10_000):
        wins[awards_service.draw_weighted(donors, Decimal("100"), rng).code] += 1

    share = wins["BIG"] / 10_000
    assert 0.88 <= share <= 0.92
    assert wins["SMALL"] > 0


@pytest.mark.anyio
async def test_pool_is_empty_for_fundraiser_without_eligible_coupons(session_factory) -> None:
    async with session_factory() as session:
        fundraiser = await create_fundraiser(session)
        await create_coupon(session, fundraiser_id=fundraiser.id, amount="10", status=CouponStatus.used)
        await create_coupon(session, fundraiser_id=fundraiser.id, amount="10", expires_at=utcnow() - timedelta(minutes=1))
        pool = await awards_service.get_fundraiser_donor_pool(session, fundraiser_id=fundraiser.id)

    assert pool.donors == []
    assert pool.total_amount == Decimal("0")
    assert pool.total_coupons == 0
    assert pool.fundraiser is None


@pytest.mark.anyio
async def test_pool_probabilities_sum_to_hundred_and_sort_descending(session_factory) -> None:
    base = utcnow().replace(microsecond=0) - timedelta(days=1)
    async with session_factory() as session:
        fundraiser = await create_fundraiser(session)
        for i, amount in enumerate(["10", "30", "20", "20", "20"]):
            await create_coupon(
                session,
                fundraiser_id=fundraiser.id,
                amount=amount,
                code=f"FU-0000000{i}",
                created_at=base + timedelta(minutes=i),
            )
        pool = await awards_service.get_fundraiser_donor_pool(session, fundraiser_id=fundraiser.id)

    assert pool.total_coupons == 5
    assert pool.total_amount == Decimal("100")
    assert [d.probability for d in pool.donors] == [
        Decimal("30.00"),
        Decimal("20.00"),
        Decimal("20.00"),
        Decimal("20.00"),
        Decimal("10.00"),
    ]
    # Equal probabilities keep creation order.
    assert [d.code for d in pool.donors[1:4]] == ["FU-00000002", "FU-00000003", "FU-00000004"]
    assert abs(sum(d.probability for d in pool.donors) - Decimal("100")) <= Decimal("0.01") * len(pool.donors)


@pytest.mark.anyio
async def test_pool_rounding_stays_close_to_hundred(session_factory) -> None:
    async with session_factory() as session:
        fundraiser = await create_fundraiser(session)
        for amount in ["1", "1", "1"]:
            await create_coupon(session, fundraiser_id=fundraiser.id, amount=amount)
        pool = await awards_service.get_fundraiser_donor_pool(session, fundraiser_id=fundraiser.id)

    assert [d.probability for d in pool.donors] == [Decimal("33.33")] * 3
    assert abs(sum(d.probability for d in pool.donors) - Decimal("100")) <= Decimal("0.03")


@pytest.mark.anyio
async def test_weighted_winner_requires_donors(session_factory) -> None:
    async with session_factory() as session:
        fundraiser = await create_fundraiser(session)
        with pytest.raises(NoEligibleDonorsError) as exc:
            await awards_service.select_weighted_winner(session, fundraiser_id=fundraiser.id)

    assert exc.value.status_code == 404
    assert exc.value.code == "no_eligible_donors"


@pytest.mark.anyio
async def test_weighted_winner_does_not_touch_coupons(session_factory) -> None:
    async with session_factory() as session:
        fundraiser = await create_fundraiser(session, title="Library")
        await create_coupon(session, fundraiser_id=fundraiser.id, amount="90")
        await create_coupon(session, fundraiser_id=fundraiser.id, amount="10")
        draw = await awards_service.select_weighted_winner(
            session, fundraiser_id=fundraiser.id, rng=random.Random(3)
        )

    assert draw.total_donors == 2
    assert draw.total_amount == Decimal("100")
    assert draw.fundraiser is not None and draw.fundraiser.title == "Library"
    async with session_factory() as session:
        statuses = (await session.execute(select(Coupon.status))).scalars().all()
    assert statuses == [CouponStatus.active, CouponStatus.active]


@pytest.mark.anyio
async def test_weighted_winner_favours_the_larger_donor(session_factory) -> None:
    rng = random.Random(99)
    async with session_factory() as session:
        fundraiser = await create_fundraiser(session)
        await create_coupon(session, fundraiser_id=fundraiser.id, amount="10", code="FU-00000010")
        await create_coupon(session, fundraiser_id=fundraiser.id, amount="90", code="FU-00000090")
        wins = 0
        for _ in range(2000):
            draw = await awards_service.select_weighted_winner(session, fundraiser_id=fundraiser.id, rng=rng)
            wins += draw.winner.code == "FU-00000090"

    assert 0.86 <= wins / 2000 <= 0.94
