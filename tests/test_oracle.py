import unittest

from tri_party_vault.errors import AuthorizationError, OracleError, ValidationError
from tri_party_vault.identity import IdentityKey
from tri_party_vault.oracle import PriceData, PriceFeedAccount, PriceOracleAdapter
from tri_party_vault.state import PriceConfig

NOW = 1_700_000_000


class TestPriceOracleAdapter(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.feed_id = IdentityKey.generate_identity()
        self.config = PriceConfig.disabled()
        self.config.enabled = True
        self.config.feed = self.feed_id
        self.oracle = PriceOracleAdapter(self.config)

    def publish(self, publish_time=NOW, identity=None, price=15_000_000_000, confidence=3_000_000):
        return PriceFeedAccount.publish(identity or self.feed_id, price, confidence, -8, publish_time)

    def test_returns_raw_fields(self):
        """Test the adapter returns the published fields unchanged"""
        px = self.oracle.fetch(self.publish(publish_time=NOW - 30), NOW)
        self.assertEqual(px, PriceData(15_000_000_000, 3_000_000, -8, NOW - 30))

    def test_missing_feed(self):
        """Test a missing feed is an oracle error"""
        with self.assertRaises(OracleError) as ctx:
            self.oracle.fetch(None, NOW)
        self.assertEqual(ctx.exception.code, "PriceAccountMissing")

    def test_feed_identity_is_pinned(self):
        """Test only the configured feed is accepted"""
        with self.assertRaises(AuthorizationError):
            self.oracle.fetch(self.publish(identity=IdentityKey.generate_identity()), NOW)

    def test_feed_identity_case_is_normalized(self):
        """Test a feed account built directly with uppercase hex matches the pinned feed"""
        feed = PriceFeedAccount(self.feed_id.upper(), self.publish().data)
        self.assertEqual(feed.identity, self.feed_id)
        self.assertEqual(self.oracle.fetch(feed, NOW).price, 15_000_000_000)

    def test_staleness_window_is_inclusive(self):
        """Test the staleness window boundary"""
        self.oracle.fetch(self.publish(publish_time=NOW - 90), NOW)
        with self.assertRaises(OracleError) as ctx:
            self.oracle.fetch(self.publish(publish_time=NOW - 91), NOW)
        self.assertEqual(ctx.exception.code, "PriceStale")

    def test_future_timestamps_beyond_window_are_stale(self):
        """Test far-future prices count as stale"""
        with self.assertRaises(OracleError):
            self.oracle.fetch(self.publish(publish_time=NOW + 91), NOW)

    def test_unparseable_payload(self):
        """Test malformed feed payloads are rejected"""
        good = self.publish()
        for data in (b"", good.data[:-1], b"XXXX" + good.data[4:]):
            with self.assertRaises(OracleError):
                self.oracle.fetch(PriceFeedAccount(self.feed_id, data), NOW)

    def test_negative_staleness_window(self):
        """Test a negative staleness window is invalid"""
        self.config.max_price_staleness_seconds = -1
        with self.assertRaises(ValidationError):
            self.oracle.fetch(self.publish(), NOW)

    def test_adapter_does_not_judge_price(self):
        """Test price sanity is left to the risk limiter"""
        px = self.oracle.fetch(self.publish(price=1, confidence=5), NOW)
        self.assertEqual(px.price - px.confidence, -4)


if __name__ == '__main__':
    unittest.main()
