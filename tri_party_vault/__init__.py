"""
Tri-Party Collateral Vault - quorum-approved, risk-limited custody
shared by a custodian, a borrower and a lender
"""

from .approvals import Approvals, ApprovalEngine, Role
from .authority import Authorizer, DerivedAuthority, SignerAuthority
from .errors import (
    AuthorizationError,
    LedgerError,
    LimitError,
    MathOverflowError,
    OracleError,
    StateError,
    ValidationError,
    VaultError,
)
from .events import EventLog
from .governance import GovernanceOps
from .identity import IdentityKey, NULL_IDENTITY
from .ledger import InMemoryTokenLedger, TokenLedger
from .oracle import PriceData, PriceFeedAccount, PriceOracleAdapter
from .release import ReleaseCoordinator
from .risk import RiskLimiter
from .state import PriceConfig, VaultRecord
from .store import VaultRecordStore
from .vault import VaultProgram

__version__ = "0.1.0"
__all__ = [
    "Approvals",
    "ApprovalEngine",
    "Role",
    "Authorizer",
    "DerivedAuthority",
    "SignerAuthority",
    "AuthorizationError",
    "LedgerError",
    "LimitError",
    "MathOverflowError",
    "OracleError",
    "StateError",
    "ValidationError",
    "VaultError",
    "EventLog",
    "GovernanceOps",
    "IdentityKey",
    "NULL_IDENTITY",
    "InMemoryTokenLedger",
    "TokenLedger",
    "PriceData",
    "PriceFeedAccount",
    "PriceOracleAdapter",
    "ReleaseCoordinator",
    "RiskLimiter",
    "PriceConfig",
    "VaultRecord",
    "VaultRecordStore",
    "VaultProgram",
]
