import unittest

from tri_party_vault.approvals import Role
from tri_party_vault.identity import IdentityKey
from tri_party_vault.ledger import InMemoryTokenLedger
from tri_party_vault.oracle import PriceFeedAccount
from tri_party_vault.vault import VaultProgram

START_TIME = 1_700_000_000
STARTING_BALANCE = 10 ** 15


class FakeClock:
    """Settable clock handed to the program"""

    def __init__(self, now: int = START_TIME):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now


class VaultTestCase(unittest.TestCase):
    """Fresh ledger, three funded roles and an initialized vault per test"""

    decimals = 6

    def setUp(self):
        """Set up test fixtures"""
        self.clock = FakeClock()
        self.ledger = InMemoryTokenLedger()
        self.asset = self.ledger.register_asset(IdentityKey.generate_identity(), self.decimals)

        self.custodian = IdentityKey.generate_identity()
        self.borrower = IdentityKey.generate_identity()
        self.lender = IdentityKey.generate_identity()
        self.recipient = IdentityKey.generate_identity()
        self.outsider = IdentityKey.generate_identity()
        self.feed_id = IdentityKey.generate_identity()

        for owner in (self.custodian, self.borrower, self.lender):
            self.ledger.mint(owner, self.asset, STARTING_BALANCE)
        self.ledger.open_account(self.recipient, self.asset)

        self.program = VaultProgram(self.ledger, clock=self.clock)
        self.vault = self.program.initialize(self.custodian, self.borrower, self.lender, self.asset)

    def units(self, whole: int) -> int:
        return whole * 10 ** self.decimals

    def fund(self, amount: int, depositor: str = None) -> int:
        return self.program.deposit(self.vault, amount, depositor or self.borrower)

    def approve_quorum(self):
        self.program.approve(self.vault, Role.CUSTODIAN, self.custodian)
        self.program.approve(self.vault, Role.LENDER, self.lender)

    def feed(self, price: int = 100_000_000, confidence: int = 0, exponent: int = -8,
             age: int = 0) -> PriceFeedAccount:
        return PriceFeedAccount.publish(self.feed_id, price, confidence, exponent, self.clock.now - age)

    def enable_pricing(self, max_ltv_bps: int = 7000, max_single_usd: int = 1_000_000_000,
                       daily_cap_usd: int = 5_000_000_000, max_staleness: int = 90):
        self.program.set_price_feed(self.vault, self.custodian, self.feed_id, True)
        self.program.set_risk_limits(self.vault, self.custodian, max_ltv_bps, max_single_usd,
                                     daily_cap_usd, max_staleness)

    def raw(self) -> bytes:
        return self.program.store.raw(self.vault)

    def recipient_balance(self) -> int:
        return self.ledger.balance_of(self.recipient, self.asset)
