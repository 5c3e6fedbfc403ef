"""
Operation surface of the vault program: one method per external operation,
each applied to a single record as one atomic step.
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, List, Optional

from .approvals import ApprovalEngine
from .authority import DerivedAuthority, SignerAuthority, authority_seeds, find_address, vault_seeds
from .errors import AuthorizationError, StateError, ValidationError, VaultError
from .events import CollateralDeposited, EventLog, VaultInitialized
from .governance import GovernanceOps
from .identity import normalize_identity, require_identity
from .ledger import TokenLedger
from .oracle import PriceFeedAccount
from .release import ReleaseCoordinator, require_amount
from .risk import checked_add
from .state import PriceConfig, VaultRecord
from .store import VaultRecordStore

logger = logging.getLogger("tri_party_vault.vault")


class VaultProgram:
    """
    High-level interface for tri-party vault operations.

    Each public method is one atomic operation on one vault record: it runs
    inside a store transaction, and its events are published only after the
    record has been committed. Vaults are addressed by the address derived
    from their asset and the three role identities at creation.
    """

    def __init__(self, ledger: TokenLedger, store: Optional[VaultRecordStore] = None,
                 clock: Optional[Callable[[], float]] = None, events: Optional[EventLog] = None):
        self.ledger = ledger
        self.store = store if store is not None else VaultRecordStore()
        self.clock = clock or time.time
        self.events = events if events is not None else EventLog()

    def now(self) -> int:
        """Current clock reading in whole seconds"""
        return int(self.clock())

    @contextmanager
    def _operation(self, name: str, vault: str):
        """Yield (record, pending_events) inside a store transaction"""
        pending: List = []
        try:
            with self.store.transaction(vault) as record:
                yield record, pending
        except VaultError as e:
            logger.warning(f"{name} rejected on vault {vault[:10]}...: {e}")
            raise
        self.events.publish(pending)

    # -- lifecycle -----------------------------------------------------------

    def initialize(self, custodian: str, borrower: str, lender: str, asset: str) -> str:
        """Create the vault record; returns the vault address"""
        custodian = require_identity(custodian, "custodian")
        borrower = require_identity(borrower, "borrower")
        lender = require_identity(lender, "lender")
        asset = require_identity(asset, "asset")

        if len({custodian, borrower, lender}) != 3:
            raise ValidationError("RoleNotDistinct", "Roles must be distinct")

        vault, _ = find_address(vault_seeds(asset, custodian, borrower, lender))
        if vault in self.store:
            raise StateError("VaultExists", f"Vault {vault[:16]}... already initialized")

        decimals = self.ledger.decimals(asset)
        authority, bump = find_address(authority_seeds(vault))

        record = VaultRecord(
            asset=asset,
            asset_decimals=decimals,
            authority_bump=bump,
            custodian=custodian,
            borrower=borrower,
            lender=lender,
            last_cap_reset_time=self.now(),
            price_config=PriceConfig.disabled()
        )
        self.ledger.open_account(authority, asset)
        self.store.create(vault, record)

        logger.info(f"Initialized vault {vault[:16]}... for asset {asset[:10]}... ({decimals} decimals)")
        self.events.publish([VaultInitialized(
            vault=vault, asset=asset, custodian=custodian, borrower=borrower, lender=lender
        )])
        return vault

    def close(self, vault: str, signer: str) -> VaultRecord:
        """Destroy a drained vault record (custodian only)"""
        vault = normalize_identity(vault)
        with self.store.lock:
            record = self.store.load(vault)
            if normalize_identity(signer) != record.custodian:
                raise AuthorizationError("Unauthorized", "Only the custodian may close the vault")

            held = self.ledger.balance(self.holding_account(vault, record))
            if record.amount_locked or held:
                raise StateError("VaultNotDrained",
                                 f"Vault still holds {record.amount_locked} locked, {held} in its account")

            self.store.destroy(vault)
        logger.info(f"Closed vault {vault[:16]}...")
        return record

    # -- collateral ----------------------------------------------------------

    def deposit(self, vault: str, amount: int, depositor: str) -> int:
        """Move tokens from a role's holding account into the vault; returns the new total"""
        vault = normalize_identity(vault)

        with self._operation("deposit", vault) as (record, pending):
            if record.is_frozen:
                raise StateError("Paused", "Vault is paused")
            # A pending release refers to the current collateral snapshot
            if record.approvals:
                raise StateError("PendingReleaseFlow", "Cannot deposit while approvals are outstanding")
            amount = require_amount(amount)
            depositor = normalize_identity(depositor)
            if not record.is_role(depositor):
                raise AuthorizationError("Unauthorized", "Depositor is not a vault role")

            new_total = checked_add(record.amount_locked, amount)
            self.ledger.transfer(
                self.ledger.holding_account(depositor, record.asset),
                self.holding_account(vault, record),
                amount,
                SignerAuthority(depositor)
            )
            record.amount_locked = new_total
            pending.append(CollateralDeposited(amount=amount, new_total=new_total))

        logger.info(f"Deposited {amount} into {vault[:10]}..., total {new_total}")
        return new_total

    def release(self, vault: str, amount: int, recipient: str,
                price_feed: Optional[PriceFeedAccount] = None) -> int:
        """Release collateral once quorum and risk limits allow; returns the amount still locked"""
        vault = normalize_identity(vault)
        with self._operation("release", vault) as (record, pending):
            coordinator = ReleaseCoordinator(record, self.ledger, vault)
            pending.extend(coordinator.release(amount, recipient, self.now(), price_feed))
            remaining = record.amount_locked
        return remaining

    # -- approvals -----------------------------------------------------------

    def approve(self, vault: str, role, signer: str) -> int:
        """Set the role's approval bit; returns the approval bitmap"""
        vault = normalize_identity(vault)
        with self._operation("approve", vault) as (record, pending):
            pending.append(ApprovalEngine(record).approve(role, normalize_identity(signer)))
            bits = record.approvals.bits
        return bits

    def revoke(self, vault: str, role, signer: str) -> int:
        vault = normalize_identity(vault)
        with self._operation("revoke", vault) as (record, pending):
            event = ApprovalEngine(record).revoke(role, normalize_identity(signer))
            if event is not None:
                pending.append(event)
            bits = record.approvals.bits
        return bits

    # -- governance ----------------------------------------------------------

    def rotate_role(self, vault: str, role, new_identity: str) -> None:
        vault = normalize_identity(vault)
        with self._operation("rotate_role", vault) as (record, _):
            GovernanceOps(record).rotate_role(role, new_identity)

    def pause(self, vault: str, signer: str) -> None:
        vault = normalize_identity(vault)
        with self._operation("pause", vault) as (record, pending):
            pending.extend(GovernanceOps(record).pause(normalize_identity(signer)))
        logger.info(f"Paused vault {vault[:10]}...")

    def unpause(self, vault: str, signer: str) -> None:
        vault = normalize_identity(vault)
        with self._operation("unpause", vault) as (record, pending):
            pending.extend(GovernanceOps(record).unpause(normalize_identity(signer)))
        logger.info(f"Unpaused vault {vault[:10]}...")

    def reset_approvals(self, vault: str, signer: str) -> None:
        vault = normalize_identity(vault)
        with self._operation("reset_approvals", vault) as (record, _):
            GovernanceOps(record).reset_approvals(normalize_identity(signer))

    def set_price_feed(self, vault: str, signer: str, feed: str, enabled: bool) -> None:
        vault = normalize_identity(vault)
        with self._operation("set_price_feed", vault) as (record, _):
            GovernanceOps(record).set_price_feed(normalize_identity(signer), feed, enabled)
        logger.info(f"Price feed for {vault[:10]}... set to {feed[:10]}... (enabled={bool(enabled)})")

    def set_risk_limits(self, vault: str, signer: str, max_ltv_bps: int, max_single_usd: int,
                        daily_cap_usd: int, max_staleness: int) -> None:
        vault = normalize_identity(vault)
        with self._operation("set_risk_limits", vault) as (record, _):
            GovernanceOps(record).set_risk_limits(
                normalize_identity(signer), max_ltv_bps, max_single_usd, daily_cap_usd, max_staleness
            )

    # -- queries -------------------------------------------------------------

    def get(self, vault: str) -> VaultRecord:
        return self.store.load(normalize_identity(vault))

    def vault_authority(self, vault: str) -> DerivedAuthority:
        record = self.get(vault)
        return DerivedAuthority.for_vault(normalize_identity(vault), record.authority_bump)

    def holding_account(self, vault: str, record: Optional[VaultRecord] = None) -> str:
        """The ledger account owned by the vault's derived authority"""
        record = record or self.get(vault)
        authority = DerivedAuthority.for_vault(vault, record.authority_bump)
        return self.ledger.holding_account(authority.address, record.asset)
