"""
Token ledger interface consumed by the vault, plus an in-memory ledger.

The vault never touches balances directly: deposits and releases are single
``transfer`` calls that either move the full amount or raise LedgerError.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List

from .authority import Authorizer
from .config import U64_MAX, U8_MAX
from .errors import LedgerError
from .identity import identity_bytes, normalize_identity

logger = logging.getLogger("tri_party_vault.ledger")


class TokenLedger(ABC):

    @abstractmethod
    def decimals(self, asset: str) -> int:
        """Fixed-point scale of ``asset``"""

    @abstractmethod
    def holding_account(self, owner: str, asset: str) -> str:
        """Address of the account holding ``asset`` for ``owner``"""

    @abstractmethod
    def open_account(self, owner: str, asset: str) -> str:
        """Create the holding account if needed and return its address"""

    @abstractmethod
    def balance(self, account: str) -> int:
        ...

    @abstractmethod
    def transfer(self, source: str, destination: str, amount: int, authority: Authorizer) -> None:
        """Atomically move ``amount`` from ``source`` to ``destination``"""


@dataclass
class HoldingAccount:
    owner: str
    asset: str
    balance: int = 0


class InMemoryTokenLedger(TokenLedger):
    """Dict-backed ledger for tests, demos and the local API"""

    def __init__(self):
        self._assets: Dict[str, int] = {}
        self._accounts: Dict[str, HoldingAccount] = {}
        self._transfer_history: List[Dict[str, Any]] = []

    def register_asset(self, asset: str, decimals: int) -> str:
        asset = normalize_identity(asset)
        if not 0 <= decimals <= U8_MAX:
            raise LedgerError("InvalidDecimals", f"Decimals {decimals} out of range")
        self._assets[asset] = decimals
        return asset

    def decimals(self, asset: str) -> int:
        try:
            return self._assets[asset]
        except KeyError:
            raise LedgerError("UnknownAsset", f"Asset {asset[:16]}... is not registered") from None

    def holding_account(self, owner: str, asset: str) -> str:
        hasher = hashlib.sha256()
        hasher.update(b"HOLDING_ACCOUNT_V1")
        hasher.update(identity_bytes(owner))
        hasher.update(identity_bytes(asset))
        return hasher.hexdigest()

    def open_account(self, owner: str, asset: str) -> str:
        self.decimals(asset)
        address = self.holding_account(owner, asset)
        if address not in self._accounts:
            self._accounts[address] = HoldingAccount(owner=owner, asset=asset)
        return address

    def _account(self, address: str) -> HoldingAccount:
        try:
            return self._accounts[address]
        except KeyError:
            raise LedgerError("AccountNotFound", f"No holding account {address[:16]}...") from None

    def owner_of(self, account: str) -> str:
        return self._account(account).owner

    def balance(self, account: str) -> int:
        return self._account(account).balance

    def balance_of(self, owner: str, asset: str) -> int:
        """Balance of ``owner``'s holding account, zero if never opened"""
        account = self._accounts.get(self.holding_account(owner, asset))
        return account.balance if account else 0

    def mint(self, owner: str, asset: str, amount: int) -> str:
        account = self._account(self.open_account(owner, asset))
        if amount <= 0 or account.balance + amount > U64_MAX:
            raise LedgerError("InvalidAmount", f"Cannot mint {amount}")
        account.balance += amount
        return self.holding_account(owner, asset)

    def transfer(self, source: str, destination: str, amount: int, authority: Authorizer) -> None:
        if amount <= 0:
            raise LedgerError("InvalidAmount", f"Transfer amount {amount} must be positive")

        src = self._account(source)
        dst = self._account(destination)

        if src.asset != dst.asset:
            raise LedgerError("AssetMismatch", "Source and destination hold different assets")
        if not authority.authorizes(src.owner):
            raise LedgerError("OwnerMismatch", f"{authority.address[:16]}... cannot spend from {source[:16]}...")
        if src.balance < amount:
            raise LedgerError("InsufficientFunds", f"Balance {src.balance} below {amount}")
        if dst.balance + amount > U64_MAX:
            raise LedgerError("Overflow", "Destination balance would overflow")

        src.balance -= amount
        dst.balance += amount

        self._transfer_history.append({
            'from': source,
            'to': destination,
            'amount': amount,
            'authority': authority.address,
            'sequence': len(self._transfer_history)
        })
        logger.debug(f"Transferred {amount} from {source[:10]}... to {destination[:10]}...")

    def get_transfer_history(self) -> List[Dict[str, Any]]:
        return self._transfer_history.copy()
