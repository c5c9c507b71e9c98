"""
Processor fee and tip arithmetic.

All amounts are integers in minor currency units. Rounding is half away
from zero at the cent.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, str, Decimal]


@dataclass(frozen=True)
class FeeSchedule:
    """Card processor pricing: a percentage plus a fixed per-charge fee."""
    rate: Decimal = Decimal("0.029")
    fixed: int = 30

    def __post_init__(self):
        object.__setattr__(self, "rate", Decimal(str(self.rate)))
        if not Decimal("0") <= self.rate < Decimal("1"):
            raise ValueError("fee rate must be in [0, 1)")
        if self.fixed < 0:
            raise ValueError("fixed fee must be non-negative")


DEFAULT_SCHEDULE = FeeSchedule()


@dataclass(frozen=True)
class TipSplit:
    """Donation/tip split after the tip's own processing cost is shifted."""
    amount: int
    tip: int
    tip_fee_share: int


@dataclass(frozen=True)
class DonationQuote:
    amount: int
    fee_amount: int
    tip_amount: int

    @property
    def total_amount(self) -> int:
        return self.amount + self.fee_amount + self.tip_amount


def round_cents(value: Number) -> int:
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def processor_fee(amount: int, schedule: FeeSchedule = DEFAULT_SCHEDULE) -> int:
    """What the processor keeps from a charge of ``amount``."""
    return round_cents(Decimal(amount) * schedule.rate + schedule.fixed)


def absorb_tip_fee(amount: int, tip: int, schedule: FeeSchedule = DEFAULT_SCHEDULE) -> TipSplit:
    """
    Move the processor's marginal fee on the tip from the tip to the donation.

    The charged total is unchanged, so the nonprofit's net take does not
    depend on whether a tip was given.
    """
    if tip <= 0:
        return TipSplit(amount=amount, tip=max(tip, 0), tip_fee_share=0)

    share = processor_fee(amount + tip, schedule) - processor_fee(amount, schedule)
    share = max(0, min(share, tip))
    return TipSplit(amount=amount + share, tip=tip - share, tip_fee_share=share)


def recover_fee(amount: int, schedule: FeeSchedule = DEFAULT_SCHEDULE) -> int:
    """
    Fee to add on top of ``amount`` so the net after processing is ``amount``.

    Starts from the algebraic estimate and corrects it until it equals the
    fee the processor actually takes on ``amount + fee``.
    """
    if amount <= 0:
        return 0

    estimate = round_cents(
        (schedule.rate * amount + schedule.fixed) / (Decimal(1) - schedule.rate)
    )
    fee = estimate
    # Each pass moves monotonically toward the fixed point.
    for _ in range(10):
        actual = processor_fee(amount + fee, schedule)
        if actual == fee:
            break
        fee = actual
    return fee


def tip_from_percentage(amount: int, percent: Number) -> int:
    if amount <= 0:
        return 0
    return round_cents(Decimal(amount) * Decimal(str(percent)) / 100)


def quote(
    amount: int,
    tip_percent: Number = 0,
    cover_fees: bool = False,
    schedule: FeeSchedule = DEFAULT_SCHEDULE
) -> DonationQuote:
    """Break a donation into the amounts a form shows before checkout."""
    if amount < 0:
        raise ValueError("amount must be non-negative")
    fee = recover_fee(amount, schedule) if cover_fees else 0
    tip = tip_from_percentage(amount, tip_percent)
    return DonationQuote(amount=amount, fee_amount=fee, tip_amount=tip)
