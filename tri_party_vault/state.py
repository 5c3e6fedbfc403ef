"""
Vault record and price config, with their fixed-size binary layout
and the invariants every committed record must satisfy.
"""

import hashlib
import struct
from dataclasses import dataclass, field, asdict, replace
from typing import Optional

from .approvals import Approvals, Role
from .config import (
    BPS_DENOMINATOR,
    DEFAULT_DAILY_CAP_USD,
    DEFAULT_MAX_LTV_BPS,
    DEFAULT_MAX_PRICE_STALENESS_SECONDS,
    DEFAULT_MAX_SINGLE_RELEASE_USD,
    DEFAULT_THRESHOLD,
    ROLE_COUNT,
    U64_MAX,
)
from .errors import MathOverflowError, StateError
from .identity import NULL_IDENTITY, identity_bytes

RECORD_DISCRIMINATOR = hashlib.sha256(b"record:VaultRecord").digest()[:8]

# discriminator, asset, decimals, authority bump, custodian, borrower, lender,
# approvals, amount_locked, is_frozen, threshold, last_cap_reset_time,
# released_today, released_today_usd, then the price config:
# enabled, feed, max_ltv_bps, max_single_release_usd, daily_cap_usd, staleness
RECORD_LAYOUT = struct.Struct("<8s32sBB32s32s32sBQ?BqQQ?32sHQQq")
RECORD_SIZE = RECORD_LAYOUT.size


@dataclass
class PriceConfig:
    """Oracle-priced risk limits"""
    enabled: bool
    feed: str  # identity of the one accepted price feed
    max_ltv_bps: int
    max_single_release_usd: int  # micro-USD
    daily_cap_usd: int  # micro-USD
    max_price_staleness_seconds: int

    @classmethod
    def disabled(cls) -> 'PriceConfig':
        """Defaults applied at initialization: feed off, USD limits preset"""
        return cls(
            enabled=False,
            feed=NULL_IDENTITY,
            max_ltv_bps=DEFAULT_MAX_LTV_BPS,
            max_single_release_usd=DEFAULT_MAX_SINGLE_RELEASE_USD,
            daily_cap_usd=DEFAULT_DAILY_CAP_USD,
            max_price_staleness_seconds=DEFAULT_MAX_PRICE_STALENESS_SECONDS
        )

    @property
    def min_retained_bps(self) -> int:
        return BPS_DENOMINATOR - self.max_ltv_bps


@dataclass
class VaultRecord:
    """Persisted state of one tri-party vault"""
    asset: str
    asset_decimals: int
    authority_bump: int
    custodian: str
    borrower: str
    lender: str
    approvals: Approvals = Approvals.NONE
    amount_locked: int = 0
    is_frozen: bool = False
    threshold: int = DEFAULT_THRESHOLD
    last_cap_reset_time: int = 0
    released_today: int = 0  # token units
    released_today_usd: int = 0  # micro-USD
    price_config: PriceConfig = field(default_factory=PriceConfig.disabled)

    def role_identity(self, role: Role) -> str:
        return getattr(self, role.field)

    def is_role(self, identity: str) -> bool:
        return identity in (self.custodian, self.borrower, self.lender)

    def check_invariants(self, previous: Optional['VaultRecord'] = None) -> None:
        """Raise StateError if the record breaks a standing invariant"""
        roles = (self.custodian, self.borrower, self.lender)
        if NULL_IDENTITY in roles:
            raise StateError("InvariantViolation", "Role identity is null")
        if len(set(roles)) != ROLE_COUNT:
            raise StateError("InvariantViolation", "Role identities are not distinct")
        if not 1 <= self.threshold <= ROLE_COUNT:
            raise StateError("InvariantViolation", f"Threshold {self.threshold} outside 1..{ROLE_COUNT}")
        if self.approvals.bits >> ROLE_COUNT:
            raise StateError("InvariantViolation", "Approval bits beyond the three roles")
        if not 0 <= self.price_config.max_ltv_bps < BPS_DENOMINATOR:
            raise StateError("InvariantViolation", "max_ltv_bps must be below 10000")
        for name in ('amount_locked', 'released_today', 'released_today_usd'):
            if not 0 <= getattr(self, name) <= U64_MAX:
                raise MathOverflowError("MathOverflow", f"{name} outside u64")
        if previous is not None and self.last_cap_reset_time < previous.last_cap_reset_time:
            raise StateError("InvariantViolation", "Daily window checkpoint moved backwards")

    def pack(self) -> bytes:
        """Fixed-size binary form used by the record store"""
        pc = self.price_config
        try:
            return RECORD_LAYOUT.pack(
                RECORD_DISCRIMINATOR,
                identity_bytes(self.asset),
                self.asset_decimals,
                self.authority_bump,
                identity_bytes(self.custodian),
                identity_bytes(self.borrower),
                identity_bytes(self.lender),
                self.approvals.bits,
                self.amount_locked,
                self.is_frozen,
                self.threshold,
                self.last_cap_reset_time,
                self.released_today,
                self.released_today_usd,
                pc.enabled,
                identity_bytes(pc.feed),
                pc.max_ltv_bps,
                pc.max_single_release_usd,
                pc.daily_cap_usd,
                pc.max_price_staleness_seconds,
            )
        except struct.error as e:
            raise MathOverflowError("MathOverflow", f"Record field out of range: {e}") from None

    @classmethod
    def unpack(cls, data: bytes) -> 'VaultRecord':
        if len(data) != RECORD_SIZE:
            raise StateError("CorruptRecord", f"Expected {RECORD_SIZE} bytes, got {len(data)}")
        (discriminator, asset, decimals, bump, custodian, borrower, lender,
         approvals, amount_locked, is_frozen, threshold, last_reset,
         released_today, released_today_usd, enabled, feed, max_ltv_bps,
         max_single, daily_cap, staleness) = RECORD_LAYOUT.unpack(data)
        if discriminator != RECORD_DISCRIMINATOR:
            raise StateError("CorruptRecord", "Record discriminator mismatch")
        return cls(
            asset=asset.hex(),
            asset_decimals=decimals,
            authority_bump=bump,
            custodian=custodian.hex(),
            borrower=borrower.hex(),
            lender=lender.hex(),
            approvals=Approvals.from_bits(approvals),
            amount_locked=amount_locked,
            is_frozen=is_frozen,
            threshold=threshold,
            last_cap_reset_time=last_reset,
            released_today=released_today,
            released_today_usd=released_today_usd,
            price_config=PriceConfig(
                enabled=enabled,
                feed=feed.hex(),
                max_ltv_bps=max_ltv_bps,
                max_single_release_usd=max_single,
                daily_cap_usd=daily_cap,
                max_price_staleness_seconds=staleness
            )
        )

    def commitment_hash(self) -> str:
        """SHA-256 over the packed record"""
        return hashlib.sha256(self.pack()).hexdigest()

    def copy(self) -> 'VaultRecord':
        return replace(self, price_config=replace(self.price_config))

    def to_dict(self) -> dict:
        data = asdict(self)
        data['approvals'] = self.approvals.bits
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'VaultRecord':
        data = dict(data)
        data['approvals'] = Approvals.from_bits(data.get('approvals', 0))
        data['price_config'] = PriceConfig(**data['price_config'])
        return cls(**data)
