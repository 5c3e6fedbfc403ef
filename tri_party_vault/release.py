"""Release of locked collateral to a recipient"""

import logging
from typing import List, Optional

from .approvals import ApprovalEngine, Approvals
from .authority import DerivedAuthority
from .config import U64_MAX
from .errors import LimitError, StateError, ValidationError
from .events import CollateralReleased, VaultEvent
from .identity import NULL_IDENTITY, normalize_identity
from .ledger import TokenLedger
from .oracle import PriceFeedAccount
from .risk import RiskLimiter, checked_sub

logger = logging.getLogger("tri_party_vault.release")


def require_amount(amount) -> int:
    """Positive u64 quantity"""
    if not isinstance(amount, int) or isinstance(amount, bool) or not 0 < amount <= U64_MAX:
        raise ValidationError("InvalidAmount", f"Amount {amount!r} must be a positive u64")
    return amount


class ReleaseCoordinator:
    """Quorum-gated, risk-limited release of collateral to a recipient"""

    def __init__(self, record, ledger: TokenLedger, vault_address: str):
        self.record = record
        self.ledger = ledger
        self.vault_address = vault_address

    @property
    def authority(self) -> DerivedAuthority:
        return DerivedAuthority.for_vault(self.vault_address, self.record.authority_bump)

    def release(self, amount: int, recipient: str, now: int,
                price_feed: Optional[PriceFeedAccount] = None) -> List[VaultEvent]:
        """
        Run the release sequence against the working record.

        Checks run in a fixed order and the first failure aborts. The record
        is mutated before the transfer (daily counters), so callers must run
        this inside a store transaction that discards the copy on error.
        """
        record = self.record
        amount = require_amount(amount)

        if record.is_frozen:
            raise StateError("Paused", "Vault is paused")

        if not ApprovalEngine(record).has_quorum():
            raise StateError("NotEnoughApprovals",
                             f"Have {record.approvals.count()} approvals, need {record.threshold}")

        if amount > record.amount_locked:
            raise LimitError("AmountExceedsLocked",
                             f"Release {amount} exceeds locked {record.amount_locked}")

        recipient = normalize_identity(recipient)
        if recipient == NULL_IDENTITY:
            raise ValidationError("NullRecipient", "Recipient must not be the null identity")

        limiter = RiskLimiter(record)
        limiter.roll_daily_window(now)

        events: List[VaultEvent] = []
        price_used = limiter.check(amount, now, price_feed)
        if price_used is not None:
            events.append(price_used)

        remaining = checked_sub(record.amount_locked, amount)

        authority = self.authority
        source = self.ledger.holding_account(authority.address, record.asset)
        destination = self.ledger.holding_account(recipient, record.asset)
        self.ledger.transfer(source, destination, amount, authority)

        record.amount_locked = remaining
        record.approvals = Approvals.NONE

        logger.info(f"Released {amount} to {recipient[:10]}..., {remaining} still locked")
        events.append(CollateralReleased(
            recipient=recipient,
            amount=amount,
            remaining=remaining,
            approvals_after=record.approvals.bits
        ))
        return events
