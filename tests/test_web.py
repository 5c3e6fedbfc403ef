import unittest

from tri_party_vault.identity import IdentityKey
from tri_party_vault.ledger import InMemoryTokenLedger
from tri_party_vault.vault import VaultProgram
from tri_party_vault.web import create_app

from tests.support import FakeClock


class TestVaultApi(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.clock = FakeClock()
        self.program = VaultProgram(InMemoryTokenLedger(), clock=self.clock)
        self.client = create_app(self.program).test_client()

        self.asset = IdentityKey.generate_identity()
        self.custodian, self.borrower, self.lender, self.recipient, self.feed_id = (
            IdentityKey.generate_identity() for _ in range(5)
        )
        self.post('/api/assets', asset=self.asset, decimals=6)
        self.post('/api/mint', owner=self.borrower, asset=self.asset, amount=5_000_000_000)
        self.post('/api/mint', owner=self.recipient, asset=self.asset, amount=1)

        response = self.post('/api/vaults', custodian=self.custodian, borrower=self.borrower,
                             lender=self.lender, asset=self.asset)
        self.assertEqual(response.status_code, 200)
        self.vault = response.get_json()['vault']

    def post(self, path, **body):
        return self.client.post(path, json=body)

    def test_get_vault(self):
        """Test the vault state endpoint"""
        response = self.client.get(f'/api/vaults/{self.vault}')
        data = response.get_json()
        self.assertEqual(data['custodian'], self.custodian)
        self.assertEqual(data['threshold'], 2)
        self.assertEqual(data['holding_balance'], 0)

    def test_unknown_vault_is_404(self):
        """Test unknown vaults return 404"""
        response = self.client.get(f'/api/vaults/{IdentityKey.generate_identity()}')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()['error'], 'VaultNotFound')

    def test_release_flow(self):
        """Test deposit, approval and release over the API"""
        self.assertEqual(self.post(f'/api/vaults/{self.vault}/deposit', amount=1_000_000_000,
                                   depositor=self.borrower).get_json()['amount_locked'], 1_000_000_000)

        response = self.post(f'/api/vaults/{self.vault}/release', amount=1, recipient=self.recipient)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json()['error'], 'NotEnoughApprovals')

        self.post(f'/api/vaults/{self.vault}/approve', role=0, signer=self.custodian)
        response = self.post(f'/api/vaults/{self.vault}/approve', role='borrower', signer=self.borrower)
        self.assertEqual(response.get_json()['approvals'], 3)

        response = self.post(f'/api/vaults/{self.vault}/release', amount=400_000_000, recipient=self.recipient)
        self.assertTrue(response.get_json()['success'])
        self.assertEqual(response.get_json()['amount_locked'], 600_000_000)

        events = self.client.get('/api/events').get_json()['events']
        self.assertEqual(events[-1]['event'], 'CollateralReleased')

    def test_priced_release_uses_published_feed(self):
        """Test priced release with a feed published over the API"""
        self.post(f'/api/vaults/{self.vault}/deposit', amount=1_000_000_000, depositor=self.borrower)
        self.post(f'/api/vaults/{self.vault}/price_feed', signer=self.custodian, feed=self.feed_id, enabled=True)
        self.post('/api/feeds', identity=self.feed_id, price=100_000_000, confidence=0,
                  exponent=-8, publish_time=self.clock.now)
        self.post(f'/api/vaults/{self.vault}/approve', role=0, signer=self.custodian)
        self.post(f'/api/vaults/{self.vault}/approve', role=2, signer=self.lender)

        response = self.post(f'/api/vaults/{self.vault}/release', amount=800_000_000,
                             recipient=self.recipient, price_feed=self.feed_id)
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.get_json()['kind'], 'limit')

        response = self.post(f'/api/vaults/{self.vault}/release', amount=300_000_000,
                             recipient=self.recipient, price_feed=self.feed_id)
        self.assertEqual(response.status_code, 200)
        info = self.client.get(f'/api/vaults/{self.vault}').get_json()
        self.assertEqual(info['released_today_usd'], 300_000_000)

    def test_price_feed_enabled_must_be_boolean(self):
        """Test the price feed switch honours false and rejects non-boolean values"""
        path = f'/api/vaults/{self.vault}/price_feed'
        self.post(path, signer=self.custodian, feed=self.feed_id, enabled=True)
        response = self.post(path, signer=self.custodian, feed=self.feed_id, enabled=False)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(self.client.get(f'/api/vaults/{self.vault}').get_json()['price_config']['enabled'])

        for value in ("false", "true", 0, 1, None):
            response = self.post(path, signer=self.custodian, feed=self.feed_id, enabled=value)
            self.assertEqual(response.status_code, 422)
            self.assertEqual(response.get_json()['error'], 'InvalidRiskParams')
        self.assertFalse(self.client.get(f'/api/vaults/{self.vault}').get_json()['price_config']['enabled'])

    def test_wrong_signer_is_403(self):
        """Test authorization failures return 403"""
        response = self.post(f'/api/vaults/{self.vault}/pause', signer=self.lender)
        self.assertEqual(response.status_code, 403)

    def test_missing_field_is_400(self):
        """Test missing fields return 400"""
        response = self.post(f'/api/vaults/{self.vault}/deposit', amount=10)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error'], 'MissingField')

    def test_governance_routes(self):
        """Test the governance endpoints"""
        self.post(f'/api/vaults/{self.vault}/risk_limits', signer=self.custodian, max_ltv_bps=5000,
                  max_single_usd=1, daily_cap_usd=2, max_staleness=30)
        self.post(f'/api/vaults/{self.vault}/approve', role=1, signer=self.borrower)
        self.post(f'/api/vaults/{self.vault}/approve', role=2, signer=self.lender)
        newcomer = IdentityKey.generate_identity()
        response = self.post(f'/api/vaults/{self.vault}/rotate_role', role=2, new_identity=newcomer)
        self.assertEqual(response.status_code, 200)

        info = self.client.get(f'/api/vaults/{self.vault}').get_json()
        self.assertEqual(info['lender'], newcomer)
        self.assertEqual(info['approvals'], 0)
        self.assertEqual(info['price_config']['max_ltv_bps'], 5000)

        self.assertEqual(self.post(f'/api/vaults/{self.vault}/close', signer=self.custodian).status_code, 200)


if __name__ == '__main__':
    unittest.main()
