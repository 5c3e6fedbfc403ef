"""
Price oracle adapter.

The vault trusts exactly one price feed, pinned by identity in its price
config. A feed account carries a fixed binary payload:

    magic "PXFD" | version u8 | price i64 | confidence u64 | exponent i32 | publish_time i64

The adapter only authenticates, decodes and checks freshness; conservative
pricing is left to the risk limiter.
"""

import struct
from dataclasses import dataclass
from typing import Optional

from .errors import AuthorizationError, OracleError, ValidationError
from .identity import normalize_identity

FEED_MAGIC = b"PXFD"
FEED_VERSION = 1
FEED_LAYOUT = struct.Struct("<4sBqQiq")


@dataclass(frozen=True)
class PriceData:
    price: int
    confidence: int
    exponent: int
    publish_time: int


@dataclass(frozen=True)
class PriceFeedAccount:
    """Raw feed account as handed in by the caller"""
    identity: str
    data: bytes

    def __post_init__(self):
        object.__setattr__(self, "identity", normalize_identity(self.identity))

    @classmethod
    def publish(cls, identity: str, price: int, confidence: int, exponent: int,
                publish_time: int) -> 'PriceFeedAccount':
        """Encode a feed account (used by feed publishers and tests)"""
        try:
            data = FEED_LAYOUT.pack(FEED_MAGIC, FEED_VERSION, price, confidence, exponent, publish_time)
        except struct.error as e:
            raise ValidationError("InvalidPriceData", str(e)) from None
        return cls(normalize_identity(identity), data)

    def decode(self) -> PriceData:
        if len(self.data) != FEED_LAYOUT.size:
            raise OracleError("PriceAccountInvalid", f"Feed payload is {len(self.data)} bytes")
        magic, version, price, confidence, exponent, publish_time = FEED_LAYOUT.unpack(self.data)
        if magic != FEED_MAGIC or version != FEED_VERSION:
            raise OracleError("PriceAccountInvalid", "Unrecognized feed payload")
        return PriceData(price, confidence, exponent, publish_time)


class PriceOracleAdapter:
    """Reads the configured feed for one vault"""

    def __init__(self, price_config):
        self.price_config = price_config

    def fetch(self, feed: Optional[PriceFeedAccount], now: int) -> PriceData:
        if feed is None:
            raise OracleError("PriceAccountMissing", "Price checks are enabled but no feed was supplied")

        if feed.identity != self.price_config.feed:
            raise AuthorizationError("Unauthorized", "Price feed does not match the configured feed")

        px = feed.decode()

        max_age = self.price_config.max_price_staleness_seconds
        if max_age < 0:
            raise ValidationError("InvalidRiskParams", "Negative staleness window")

        # Timestamps too far in the future are rejected like stale ones
        if abs(now - px.publish_time) > max_age:
            raise OracleError("PriceStale", f"Price published at {px.publish_time}, now {now}, window {max_age}s")

        return px
