"""
Release risk limits.

Two mutually exclusive modes, chosen by ``price_config.enabled``:

* token mode: fixed per-release and per-day caps in base units;
* USD mode: per-release and per-day caps in micro-USD valued at the
  conservative oracle price (price - confidence), plus an LTV guard that
  keeps ``(10000 - max_ltv_bps) / 10000`` of the pre-release valuation in
  the vault.

All valuation is integer math with floor division, so rounding never
favours the party asking for the release. Intermediates are held to 128
bits and overflow fails the release rather than wrapping.
"""

import logging
from typing import Optional

from .config import (
    BPS_DENOMINATOR,
    DAILY_CAP_TOKENS,
    DAILY_WINDOW_SECONDS,
    MAX_SINGLE_RELEASE_TOKENS,
    U128_MAX,
    U64_MAX,
    USD_SCALE,
)
from .errors import LimitError, MathOverflowError, OracleError
from .events import PriceUsed
from .oracle import PriceData, PriceFeedAccount, PriceOracleAdapter

logger = logging.getLogger("tri_party_vault.risk")

MAX_POW10 = 38  # largest power of ten below 2**128


def checked_add(a: int, b: int, limit: int = U64_MAX) -> int:
    total = a + b
    if total > limit:
        raise MathOverflowError("MathOverflow", f"{a} + {b} overflows")
    return total


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise MathOverflowError("MathOverflow", f"{a} - {b} underflows")
    return a - b


def checked_mul(a: int, b: int, limit: int = U128_MAX) -> int:
    product = a * b
    if product > limit:
        raise MathOverflowError("MathOverflow", f"{a} * {b} overflows")
    return product


def ten_pow(exp: int) -> int:
    """10**exp within u128; negative exponents are not representable"""
    if exp < 0:
        raise MathOverflowError("MathOverflow", f"Negative scale exponent {exp}")
    if exp > MAX_POW10:
        raise MathOverflowError("MathOverflow", f"10^{exp} overflows")
    return 10 ** exp


def conservative_price(px: PriceData) -> int:
    """Price minus its confidence interval; must stay positive"""
    price = px.price - px.confidence
    if price <= 0:
        raise OracleError("PriceNonPositive", f"Conservative price {price} is not positive")
    return price


def usd_value(quantity: int, price: int, asset_decimals: int, exponent: int) -> int:
    """Micro-USD value of ``quantity`` base units, rounded down"""
    denom = ten_pow(asset_decimals - exponent)
    numerator = checked_mul(checked_mul(quantity, price), USD_SCALE)
    return numerator // denom


class RiskLimiter:
    """Daily window and per-mode release caps for one vault record"""

    def __init__(self, record, oracle: Optional[PriceOracleAdapter] = None):
        self.record = record
        self.oracle = oracle or PriceOracleAdapter(record.price_config)

    @property
    def priced(self) -> bool:
        return self.record.price_config.enabled

    def roll_daily_window(self, now: int) -> bool:
        """Reset daily counters once a full window has passed since the checkpoint"""
        if now - self.record.last_cap_reset_time < DAILY_WINDOW_SECONDS:
            return False
        self.record.last_cap_reset_time = now
        self.record.released_today = 0
        self.record.released_today_usd = 0
        logger.debug(f"Daily window reset at {now}")
        return True

    def check(self, amount: int, now: int, feed: Optional[PriceFeedAccount] = None) -> Optional[PriceUsed]:
        """Apply the active mode's limits and record the release against them"""
        if self.priced:
            return self.check_usd(amount, now, feed)
        self.check_tokens(amount)
        return None

    def check_tokens(self, amount: int) -> None:
        if amount > MAX_SINGLE_RELEASE_TOKENS:
            raise LimitError("SingleReleaseCapExceeded",
                             f"Release {amount} exceeds per-release cap {MAX_SINGLE_RELEASE_TOKENS}")

        new_today = checked_add(self.record.released_today, amount)
        if new_today > DAILY_CAP_TOKENS:
            raise LimitError("DailyCapExceeded",
                             f"Released today would be {new_today}, cap {DAILY_CAP_TOKENS}")

        self.record.released_today = new_today

    def check_usd(self, amount: int, now: int, feed: Optional[PriceFeedAccount]) -> PriceUsed:
        pc = self.record.price_config
        px = self.oracle.fetch(feed, now)
        price = conservative_price(px)

        decimals = self.record.asset_decimals
        release_usd = usd_value(amount, price, decimals, px.exponent)
        # Valued before the release, at the same price snapshot
        total_usd = usd_value(self.record.amount_locked, price, decimals, px.exponent)

        if release_usd > pc.max_single_release_usd:
            raise LimitError("UsdCapExceeded",
                             f"Release worth {release_usd} micro-USD exceeds per-release cap {pc.max_single_release_usd}")

        new_today_usd = checked_add(self.record.released_today_usd, release_usd, limit=U128_MAX)
        if new_today_usd > pc.daily_cap_usd:
            raise LimitError("UsdCapExceeded",
                             f"Released today would be {new_today_usd} micro-USD, cap {pc.daily_cap_usd}")

        remaining_usd = checked_sub(total_usd, release_usd)
        min_remaining_usd = checked_mul(total_usd, pc.min_retained_bps) // BPS_DENOMINATOR
        if remaining_usd < min_remaining_usd:
            raise LimitError("LtvBreach",
                             f"Remaining {remaining_usd} micro-USD below required {min_remaining_usd}")

        self.record.released_today_usd = new_today_usd

        logger.debug(f"Priced release: {release_usd} of {total_usd} micro-USD at {px.price}±{px.confidence}e{px.exponent}")
        return PriceUsed(
            feed=pc.feed,
            price=px.price,
            confidence=px.confidence,
            exponent=px.exponent,
            publish_time=px.publish_time
        )
