"""
Governance actions on a vault: role rotation under quorum, and the
custodian's pause and configuration controls.
"""

import logging
from typing import List

from .approvals import ApprovalEngine, Role
from .config import BPS_DENOMINATOR, I64_MAX, U64_MAX
from .errors import AuthorizationError, StateError, ValidationError
from .events import Paused, StateSignal, Unpaused, VaultEvent
from .identity import normalize_identity, require_identity

logger = logging.getLogger("tri_party_vault.governance")


def _require_range(name: str, value, low: int, high: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not low <= value <= high:
        raise ValidationError("InvalidRiskParams", f"{name}={value!r} outside {low}..{high}")
    return value


class GovernanceOps:
    """Role rotation and custodian-only administration"""

    def __init__(self, record):
        self.record = record

    def _require_custodian(self, signer: str) -> None:
        if signer != self.record.custodian:
            raise AuthorizationError("Unauthorized", "Only the custodian may do this")

    def _state_signal(self) -> StateSignal:
        return StateSignal(
            paused=self.record.is_frozen,
            approvals=self.record.approvals.bits,
            amount_locked=self.record.amount_locked
        )

    def rotate_role(self, role, new_identity: str) -> None:
        """Replace a role's identity once a quorum has approved; clears approvals"""
        engine = ApprovalEngine(self.record)
        if not engine.has_quorum():
            raise StateError("NotEnoughApprovals",
                             f"Have {self.record.approvals.count()} approvals, need {self.record.threshold}")

        role = Role.parse(role)
        new_identity = require_identity(new_identity, role.field)
        for other in Role:
            if other is not role and self.record.role_identity(other) == new_identity:
                raise ValidationError("RoleNotDistinct", f"Identity already holds the {other.field} role")

        setattr(self.record, role.field, new_identity)
        engine.reset()
        logger.info(f"Rotated {role.field} to {new_identity[:10]}...")

    def pause(self, signer: str) -> List[VaultEvent]:
        self._require_custodian(signer)
        self.record.is_frozen = True
        return [Paused(), self._state_signal()]

    def unpause(self, signer: str) -> List[VaultEvent]:
        self._require_custodian(signer)
        self.record.is_frozen = False
        return [Unpaused(), self._state_signal()]

    def reset_approvals(self, signer: str) -> None:
        self._require_custodian(signer)
        ApprovalEngine(self.record).reset()

    def set_price_feed(self, signer: str, feed: str, enabled: bool) -> None:
        self._require_custodian(signer)
        self.record.price_config.feed = normalize_identity(feed)
        self.record.price_config.enabled = bool(enabled)

    def set_risk_limits(self, signer: str, max_ltv_bps: int, max_single_usd: int,
                        daily_cap_usd: int, max_staleness: int) -> None:
        self._require_custodian(signer)
        pc = self.record.price_config
        # 100% LTV would allow draining the vault
        pc.max_ltv_bps = _require_range("max_ltv_bps", max_ltv_bps, 0, BPS_DENOMINATOR - 1)
        pc.max_single_release_usd = _require_range("max_single_usd", max_single_usd, 0, U64_MAX)
        pc.daily_cap_usd = _require_range("daily_cap_usd", daily_cap_usd, 0, U64_MAX)
        pc.max_price_staleness_seconds = _require_range("max_staleness", max_staleness, 0, I64_MAX)
