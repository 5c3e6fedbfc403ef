"""
Error kinds raised by vault operations.

Every failure is terminal for the operation that raised it: the record store
discards the working copy, so no partial state is ever committed. Each error
carries a short ``code`` naming the exact rule that rejected the operation.
"""


class VaultError(Exception):
    """Base class for all vault errors"""

    kind = "vault"

    def __init__(self, code: str, message: str = ""):
        self.code = code
        self.message = message or code
        super().__init__(f"{code}: {self.message}")

    def to_dict(self) -> dict:
        return {'error': self.code, 'kind': self.kind, 'message': self.message}


class AuthorizationError(VaultError):
    """Wrong signer for a role, or a mismatched feed identity"""
    kind = "authorization"


class ValidationError(VaultError):
    """Malformed input: amount, role index, identity, risk parameter"""
    kind = "validation"


class StateError(VaultError):
    """Operation not allowed in the vault's current state"""
    kind = "state"


class LimitError(VaultError):
    """Per-release cap, daily cap or LTV breach"""
    kind = "limit"


class OracleError(VaultError):
    """Missing, stale, unparseable or non-positive price"""
    kind = "oracle"


class MathOverflowError(VaultError, ArithmeticError):
    """Checked arithmetic left its integer width"""
    kind = "arithmetic"


class LedgerError(VaultError):
    """The token ledger refused a transfer"""
    kind = "ledger"
