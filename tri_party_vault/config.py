"""
Fixed vault constants and runtime settings
"""

import os
from dataclasses import dataclass

# Program identity mixed into every derived address
PROGRAM_ID = bytes.fromhex("2b8e1c7a5d40f3a9e6b1c0d27f4a8e95c3d61b0a7f2e4c98d5a3b1e0f6c72d41")

# Derivation seeds
SEED_VAULT = b"vault"
SEED_AUTH = b"authority"
DERIVATION_MARKER = b"ProgramDerivedAddress"

# Token-denominated risk knobs used when the price feed is disabled
DAILY_CAP_TOKENS = 1_000_000_000_000        # per-day release cap (base units)
MAX_SINGLE_RELEASE_TOKENS = 500_000_000_000  # per-release cap (base units)

# Governance defaults
DEFAULT_THRESHOLD = 2  # 2-of-3
ROLE_COUNT = 3

# Price config defaults (feed starts disabled)
DEFAULT_MAX_LTV_BPS = 7000                        # 70% LTV -> 30% retained
DEFAULT_MAX_SINGLE_RELEASE_USD = 1_000_000_000    # 1,000 USD in micro-USD
DEFAULT_DAILY_CAP_USD = 5_000_000_000             # 5,000 USD in micro-USD
DEFAULT_MAX_PRICE_STALENESS_SECONDS = 90

# Accounting
DAILY_WINDOW_SECONDS = 86_400
BPS_DENOMINATOR = 10_000
USD_SCALE = 1_000_000  # micro-USD

# Integer widths
U8_MAX = 2**8 - 1
U16_MAX = 2**16 - 1
U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

IDENTITY_SIZE = 32


@dataclass
class WebSettings:
    """Settings for the JSON API entry point"""
    host: str = "0.0.0.0"
    port: int = 10000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> 'WebSettings':
        return cls(
            host=os.environ.get("VAULT_WEB_HOST", cls.host),
            port=int(os.environ.get("VAULT_WEB_PORT", cls.port)),
            log_level=os.environ.get("VAULT_LOG_LEVEL", cls.log_level).upper()
        )
