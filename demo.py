#!/usr/bin/env python3
"""
Walkthrough of a tri-party collateral vault
"""

import logging
import time

from tri_party_vault.approvals import Role
from tri_party_vault.errors import VaultError
from tri_party_vault.identity import IdentityKey
from tri_party_vault.ledger import InMemoryTokenLedger
from tri_party_vault.oracle import PriceFeedAccount
from tri_party_vault.vault import VaultProgram


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("TRI-PARTY COLLATERAL VAULT - DEMO")
    print("=" * 60)
    print()

    # Step 1: Participants
    print("STEP 1: Setting up participants")
    print("-" * 40)

    ledger = InMemoryTokenLedger()
    asset = ledger.register_asset(IdentityKey.generate_identity(), 6)

    participants = {}
    for name in ("custodian", "borrower", "lender", "recipient"):
        participants[name] = IdentityKey.generate_identity()
        print(f"{name:>10}: {participants[name][:16]}...")
    for name in ("custodian", "borrower", "lender"):
        ledger.mint(participants[name], asset, 5_000_000_000)  # 5,000 tokens each
    ledger.open_account(participants["recipient"], asset)
    print()

    # Step 2: Vault
    print("STEP 2: Creating the vault")
    print("-" * 40)

    program = VaultProgram(ledger)
    vault = program.initialize(participants["custodian"], participants["borrower"],
                               participants["lender"], asset)
    authority = program.vault_authority(vault)
    print(f"Vault address:   {vault}")
    print(f"Vault authority: {authority.address} (bump {authority.bump})")
    print()

    program.deposit(vault, 1_000_000_000, participants["borrower"])
    print(f"Locked: {program.get(vault).amount_locked:,} base units (1,000 tokens)")
    print()

    # Step 3: Token-mode release
    print("STEP 3: Release with 2-of-3 approvals (token caps)")
    print("-" * 40)

    try:
        program.release(vault, 100_000_000, participants["recipient"])
        print("UNEXPECTED: release without approvals succeeded")
    except VaultError as e:
        print(f"Expected failure: {e}")

    program.approve(vault, Role.CUSTODIAN, participants["custodian"])
    program.approve(vault, Role.LENDER, participants["lender"])
    remaining = program.release(vault, 100_000_000, participants["recipient"])
    print(f"Released 100 tokens, {remaining:,} base units still locked")
    print()

    # Step 4: Oracle-priced release
    print("STEP 4: Release under USD caps and LTV guard")
    print("-" * 40)

    feed_id = IdentityKey.generate_identity()
    program.set_price_feed(vault, participants["custodian"], feed_id, True)
    feed = PriceFeedAccount.publish(feed_id, 100_000_000, 1_000_000, -8, int(time.time()))
    print("Feed price: $1.00 +/- $0.01 (valued at $0.99)")

    program.approve(vault, Role.BORROWER, participants["borrower"])
    program.approve(vault, Role.LENDER, participants["lender"])
    try:
        program.release(vault, 700_000_000, participants["recipient"], feed)
        print("UNEXPECTED: LTV breach accepted")
    except VaultError as e:
        print(f"Expected failure: {e}")

    remaining = program.release(vault, 500_000_000, participants["recipient"], feed)
    record = program.get(vault)
    print(f"Released 500 tokens worth ${record.released_today_usd / 1_000_000:,.2f}")
    print(f"Still locked: {remaining:,} base units")
    print()

    # Step 5: Summary
    print("STEP 5: Summary")
    print("-" * 40)
    print(f"Recipient balance: {ledger.balance_of(participants['recipient'], asset):,}")
    print(f"Events reported:   {len(program.events)}")
    for event in program.events:
        print(f"   {type(event).__name__}")


if __name__ == "__main__":
    main()
