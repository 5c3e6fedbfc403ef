"""
Role and account identities.

Identities are opaque 32-byte values carried as lowercase hex. Participants
hold secp256k1 keys and are identified by the x-coordinate of their public
key; derived authorities are hashes that are deliberately *not* a valid
x-coordinate, so no private key can ever exist for them.
"""

from ecdsa import SigningKey, SECP256k1, VerifyingKey, BadSignatureError, MalformedPointError

from .config import IDENTITY_SIZE
from .errors import ValidationError

NULL_IDENTITY = "00" * IDENTITY_SIZE


def identity_bytes(identity: str) -> bytes:
    """Decode a hex identity, rejecting anything that is not 32 bytes"""
    if not isinstance(identity, str) or len(identity) != IDENTITY_SIZE * 2:
        raise ValidationError("InvalidIdentity", f"Identity must be {IDENTITY_SIZE * 2} hex characters")
    try:
        return bytes.fromhex(identity)
    except ValueError:
        raise ValidationError("InvalidIdentity", f"Identity {identity[:8]}... is not hex") from None


def normalize_identity(identity: str) -> str:
    return identity_bytes(identity).hex()


def require_identity(identity: str, what: str = "identity") -> str:
    """Validate a non-null identity and return it normalized"""
    value = normalize_identity(identity)
    if value == NULL_IDENTITY:
        raise ValidationError("NullIdentity", f"{what} must not be the null identity")
    return value


def is_on_curve(identity: str) -> bool:
    """True when the identity is the x-coordinate of a secp256k1 point"""
    raw = identity_bytes(identity)
    try:
        VerifyingKey.from_string(b'\x02' + raw, curve=SECP256k1)
    except MalformedPointError:
        return False
    return True


class IdentityKey:
    """secp256k1 key pair for a vault participant"""

    def __init__(self, private_key: bytes = None):
        if private_key:
            self.private_key = SigningKey.from_string(private_key, curve=SECP256k1)
        else:
            self.private_key = SigningKey.generate(curve=SECP256k1)

        self.public_key = self.private_key.get_verifying_key()

    @property
    def identity(self) -> str:
        """x-only public key in hex"""
        x = self.public_key.pubkey.point.x()
        return x.to_bytes(IDENTITY_SIZE, 'big').hex()

    def sign_message(self, message: bytes) -> str:
        return self.private_key.sign(message).hex()

    def verify_signature(self, message: bytes, signature_hex: str) -> bool:
        try:
            return self.public_key.verify(bytes.fromhex(signature_hex), message)
        except (BadSignatureError, ValueError):
            return False

    @staticmethod
    def generate_identity() -> str:
        """Generate a fresh participant identity"""
        return IdentityKey().identity
