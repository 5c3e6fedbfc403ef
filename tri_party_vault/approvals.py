"""
Role approvals: one bit per role, counted against the vault threshold.
"""

from enum import Enum, Flag
from typing import Optional

from .config import ROLE_COUNT
from .errors import AuthorizationError, ValidationError
from .events import ReleaseApproved


class Approvals(Flag):
    """Approval set, one bit per role"""
    NONE = 0
    CUSTODIAN = 1
    BORROWER = 2
    LENDER = 4

    @classmethod
    def from_bits(cls, bits: int) -> 'Approvals':
        if not 0 <= bits < (1 << ROLE_COUNT):
            raise ValidationError("InvalidApprovals", f"Approval bits {bits:#x} outside the three roles")
        return cls(bits)

    @property
    def bits(self) -> int:
        return self.value

    def count(self) -> int:
        return bin(self.value).count("1")


class Role(Enum):
    CUSTODIAN = 0
    BORROWER = 1
    LENDER = 2

    @classmethod
    def parse(cls, value) -> 'Role':
        """Accept a Role, its index or its name"""
        if isinstance(value, Role):
            return value
        if isinstance(value, str) and value.upper() in cls.__members__:
            return cls[value.upper()]
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                pass
        raise ValidationError("InvalidRole", f"Unknown role {value!r}")

    @property
    def flag(self) -> Approvals:
        return Approvals(1 << self.value)

    @property
    def field(self) -> str:
        """Name of the record attribute holding this role's identity"""
        return self.name.lower()


class ApprovalEngine:
    """Per-role approval bits on a vault record"""

    def __init__(self, record):
        self.record = record

    def _check_signer(self, role: Role, signer: str) -> None:
        if signer != getattr(self.record, role.field):
            raise AuthorizationError("Unauthorized", f"Signer is not the {role.field}")

    def approve(self, role, signer: str) -> ReleaseApproved:
        """Set the role's bit. Always reported, even when already set."""
        role = Role.parse(role)
        self._check_signer(role, signer)
        self.record.approvals |= role.flag
        return ReleaseApproved(by_role=role.value, approvals=self.record.approvals.bits)

    def revoke(self, role, signer: str) -> Optional[ReleaseApproved]:
        """Clear the role's bit. Reported only if the bit was set."""
        role = Role.parse(role)
        self._check_signer(role, signer)
        if not self.record.approvals & role.flag:
            return None
        self.record.approvals &= ~role.flag
        return ReleaseApproved(by_role=role.value, approvals=self.record.approvals.bits)

    def reset(self) -> None:
        self.record.approvals = Approvals.NONE

    def has_quorum(self) -> bool:
        return self.record.approvals.count() >= self.record.threshold

    def approved_roles(self):
        return [role for role in Role if self.record.approvals & role.flag]
