"""
Integration Tests for the CRM API client

Runs against a live backend; skipped unless CRM_INTEGRATION_URL is set.
CRM_INTEGRATION_TOKEN supplies the bearer token for authenticated routes.

1. Audience preview:
   - default tree through the campaign preview
   - flat rules through the segment preview

2. Segment lifecycle:
   - create from a rule built with the segment builder
   - fetch, preview by id and delete

3. Error handling:
   - unknown segment ids surface as ApiError
"""

import os
import unittest
from unittest.mock import MagicMock

import sys
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.crm import ApiError, CrmClient
from src.rules import (
    RuleSession,
    SegmentData,
    add_condition,
    add_rule,
    default_segment_rules,
    update_rule,
)
from src.rules.session import created_id_of

INTEGRATION_URL = os.getenv('CRM_INTEGRATION_URL')


@unittest.skipUnless(INTEGRATION_URL, 'CRM_INTEGRATION_URL not set')
class TestCrmIntegration(unittest.TestCase):
    """Integration tests against a running CRM backend"""

    @classmethod
    def setUpClass(cls):
        """Set up test environment - runs once before all tests"""
        auth = None
        token = os.getenv('CRM_INTEGRATION_TOKEN')
        if token:
            auth = MagicMock()
            auth.get_token.return_value = token
        cls.client = CrmClient(base_url=INTEGRATION_URL, auth=auth)
        cls.created_segments = []

    @classmethod
    def tearDownClass(cls):
        """Remove segments created by the tests"""
        for segment_id in cls.created_segments:
            try:
                cls.client.segments.delete(segment_id)
            except ApiError:
                pass

    def test_preview_tree(self):
        session = RuleSession(preview=self.client.campaigns.preview_audience)
        session.apply(add_condition, 'root')
        size = session.preview()
        self.assertGreaterEqual(size, 0)

    def test_preview_flat_rules(self):
        rules = update_rule(default_segment_rules(), 0, 'value', 100)
        session = RuleSession(rules, preview=lambda wire: self.client.segments.preview_audience(rules=wire))
        self.assertGreaterEqual(session.preview(), 0)

    def test_segment_lifecycle(self):
        rules = add_rule(default_segment_rules())
        rules = update_rule(rules, 1, 'field', 'total_visits')

        def submit(wire):
            return self.client.segments.create(SegmentData(name='Integration test segment', rules=wire))

        segment_id = RuleSession(rules, submit=submit).submit()
        self.assertIsNotNone(segment_id)
        self.created_segments.append(segment_id)

        fetched = self.client.segments.get(segment_id)
        self.assertEqual(created_id_of(fetched), segment_id)

        preview = self.client.segments.preview_audience(segment_id)
        self.assertIsInstance(preview, dict)

    def test_unknown_segment(self):
        with self.assertRaises(ApiError):
            self.client.segments.get('000000000000000000000000')


if __name__ == '__main__':
    unittest.main()
