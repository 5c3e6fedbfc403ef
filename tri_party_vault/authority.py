"""
Derived signing authorities.

A vault moves tokens through an authority address that has no private key:
the address is a hash of fixed seeds and a one-byte offset ("bump"), chosen
so the result is not a secp256k1 x-coordinate. Anyone holding the seeds can
recompute the derivation, which is the only proof of authority the token
ledger asks for.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

from cryptography.hazmat.primitives import hashes

from .config import PROGRAM_ID, DERIVATION_MARKER, SEED_AUTH, SEED_VAULT
from .errors import AuthorizationError, StateError
from .identity import identity_bytes, is_on_curve


def _hash_seeds(seeds: Sequence[bytes], bump: int) -> str:
    digest = hashes.Hash(hashes.SHA256())
    for seed in seeds:
        digest.update(seed)
    digest.update(bytes([bump]))
    digest.update(PROGRAM_ID)
    digest.update(DERIVATION_MARKER)
    return digest.finalize().hex()


def create_address(seeds: Sequence[bytes], bump: int) -> str:
    """Address for an explicit bump; fails if it lands on the curve"""
    address = _hash_seeds(seeds, bump)
    if is_on_curve(address):
        raise AuthorizationError("InvalidSeeds", "Derived address is on the curve")
    return address


def find_address(seeds: Sequence[bytes]) -> Tuple[str, int]:
    """Search bumps from 255 down for the first off-curve address"""
    for bump in range(255, -1, -1):
        address = _hash_seeds(seeds, bump)
        if not is_on_curve(address):
            return address, bump
    raise StateError("BumpNotFound", "No off-curve address for these seeds")


def vault_seeds(asset: str, custodian: str, borrower: str, lender: str) -> List[bytes]:
    return [
        SEED_VAULT,
        identity_bytes(asset),
        identity_bytes(custodian),
        identity_bytes(borrower),
        identity_bytes(lender),
    ]


def authority_seeds(vault_address: str) -> List[bytes]:
    return [SEED_AUTH, identity_bytes(vault_address)]


class Authorizer(ABC):
    """Capability presented to the token ledger when moving funds"""

    @property
    @abstractmethod
    def address(self) -> str:
        ...

    @abstractmethod
    def authorizes(self, owner: str) -> bool:
        """True if this capability may spend from accounts owned by ``owner``"""


class SignerAuthority(Authorizer):
    """An identity acting on its own accounts"""

    def __init__(self, identity: str):
        self._identity = identity

    @property
    def address(self) -> str:
        return self._identity

    def authorizes(self, owner: str) -> bool:
        return owner == self._identity


class DerivedAuthority(Authorizer):
    """Keyless authority proven by re-deriving its address"""

    def __init__(self, seeds: Sequence[bytes], bump: int):
        self.seeds = list(seeds)
        self.bump = bump
        self._address = create_address(self.seeds, bump)

    @classmethod
    def for_vault(cls, vault_address: str, bump: int) -> 'DerivedAuthority':
        return cls(authority_seeds(vault_address), bump)

    @property
    def address(self) -> str:
        return self._address

    def authorizes(self, owner: str) -> bool:
        # Structural check only: the derivation must still reproduce the owner
        return owner == self._address and _hash_seeds(self.seeds, self.bump) == owner

    def __repr__(self) -> str:
        return f"DerivedAuthority(address={self._address[:16]}..., bump={self.bump})"
