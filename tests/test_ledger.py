import unittest
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from memora.core.ledger import CostLedger
from memora.core.models import CostPeriod, LedgerState, SearchCostEntry, TranscriptionCostEntry
from memora.core.pricing import calculate_transcription_cost


class TestCostLedger(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.path = Path(self.temp_dir.name) / "state" / "ledger.json"
        self.ledger = CostLedger(self.path)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_empty_ledger(self):
        summary = self.ledger.get_cost_summary()
        self.assertEqual(summary.grand_total, 0.0)
        self.assertEqual(summary.total_requests, 0)
        self.assertFalse(self.path.exists())

    def test_record_transcription(self):
        breakdown = calculate_transcription_cost(100_000, 50_000, "gemini-1.5-flash", 1.35)

        entry = self.ledger.record_transcription(breakdown, file_name="standup.m4a", embedding_cost=0.01)

        self.assertAlmostEqual(entry.total_cost, breakdown.total_cost + 0.01)
        self.assertEqual(entry.embedding_cost, 0.01)
        summary = self.ledger.get_cost_summary()
        self.assertAlmostEqual(summary.total_transcription_cost, breakdown.transcription_cost)
        self.assertAlmostEqual(summary.total_embedding_cost, 0.01)
        self.assertAlmostEqual(summary.grand_total, entry.total_cost)
        self.assertEqual(summary.total_requests, 1)
        self.assertIsNotNone(summary.updated_at)

    def test_track_search_cost(self):
        cost = self.ledger.track_search_cost("budget decisions", 1000, "gemini-2.0-flash", 1.35)

        self.assertAlmostEqual(cost, 1000 * 0.1 / 1e6 * 1.35)
        summary = self.ledger.get_cost_summary()
        self.assertAlmostEqual(summary.total_search_cost, cost)
        self.assertAlmostEqual(summary.grand_total, cost)

        [search] = self.ledger.get_recent_search_costs()
        self.assertEqual(search.query, "budget decisions")
        self.assertEqual(search.tokens, 1000)

    def test_search_with_unknown_model_is_not_stored(self):
        with self.assertRaises(ValueError):
            self.ledger.track_search_cost("q", 10, "unknown-model", 1.35)
        self.assertEqual(self.ledger.get_recent_search_costs(), [])

    def test_update_cost_summary(self):
        self.ledger.update_cost_summary(0.5, 0.25)
        summary = self.ledger.update_cost_summary(0.0, 0.0, 0.1)

        self.assertAlmostEqual(summary.grand_total, 0.85)
        self.assertEqual(summary.total_requests, 2)

    def test_persists_across_instances(self):
        self.ledger.update_cost_summary(1.0, 0.0)
        reopened = CostLedger(self.path)
        self.assertAlmostEqual(reopened.get_cost_summary().grand_total, 1.0)

    def test_recent_searches_newest_first(self):
        now = datetime(2026, 5, 1, 9, 0)
        state = LedgerState(searches=[
            SearchCostEntry(created_at=now - timedelta(minutes=i), query=f"q{i}", tokens=1, cost=0.0,
                            model="text-embedding-004", exchange_rate=1.35)
            for i in (3, 0, 2, 1)
        ])
        self.ledger.save(state)

        recent = self.ledger.get_recent_search_costs(limit=2)

        self.assertEqual([s.query for s in recent], ["q0", "q1"])


class TestPeriodSummary(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.ledger = CostLedger(Path(self.temp_dir.name) / "ledger.json")
        self.now = datetime(2026, 5, 20, 15, 0)

        def transcription(age, cost):
            return TranscriptionCostEntry(
                created_at=self.now - age, model="gemini-2.0-flash",
                input_tokens=100, output_tokens=50, transcription_cost=cost,
                total_cost=cost, exchange_rate=1.35,
            )

        def search(age, cost):
            return SearchCostEntry(
                created_at=self.now - age, query="q", tokens=10, cost=cost,
                model="gemini-2.0-flash", exchange_rate=1.35,
            )

        self.ledger.save(LedgerState(
            transcriptions=[
                transcription(timedelta(hours=1), 1.0),
                transcription(timedelta(days=3), 2.0),
                transcription(timedelta(days=20), 4.0),
                transcription(timedelta(days=60), 8.0),
            ],
            searches=[
                search(timedelta(hours=2), 0.5),
                search(timedelta(days=10), 0.25),
            ],
        ))

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_all(self):
        summary = self.ledger.period_summary(CostPeriod.ALL, now=self.now)
        self.assertEqual(summary.transcription_count, 4)
        self.assertAlmostEqual(summary.transcription_total, 15.0)
        self.assertAlmostEqual(summary.grand_total, 15.75)

    def test_today(self):
        summary = self.ledger.period_summary("today", now=self.now)
        self.assertEqual(summary.transcription_count, 1)
        self.assertEqual(summary.search_count, 1)
        self.assertAlmostEqual(summary.grand_total, 1.5)

    def test_week(self):
        summary = self.ledger.period_summary("week", now=self.now)
        self.assertEqual(summary.transcription_count, 2)
        self.assertAlmostEqual(summary.avg_transcription_cost, 1.5)
        self.assertEqual(summary.search_count, 1)

    def test_month(self):
        summary = self.ledger.period_summary("month", now=self.now)
        self.assertEqual(summary.transcription_count, 3)
        self.assertAlmostEqual(summary.search_total, 0.75)
        self.assertAlmostEqual(summary.avg_search_cost, 0.375)

    def test_limit_applies_to_rows_not_totals(self):
        summary = self.ledger.period_summary("all", limit=1, now=self.now)
        self.assertEqual(len(summary.recent_transcriptions), 1)
        self.assertAlmostEqual(summary.recent_transcriptions[0].total_cost, 1.0)
        self.assertAlmostEqual(summary.transcription_total, 15.0)

    def test_timezone_aware_now(self):
        aware_now = self.now.astimezone(timezone.utc)

        week = self.ledger.period_summary("week", now=aware_now)
        month = self.ledger.period_summary("month", now=aware_now)

        self.assertEqual(week.transcription_count, 2)
        self.assertEqual(month.transcription_count, 3)
        self.assertAlmostEqual(month.search_total, 0.75)

    def test_mixed_naive_and_aware_rows(self):
        state = self.ledger.load()
        state.transcriptions.append(TranscriptionCostEntry(
            created_at=(self.now - timedelta(hours=3)).astimezone(timezone.utc), model="gemini-2.0-flash",
            transcription_cost=0.5, total_cost=0.5, exchange_rate=1.35,
        ))
        self.ledger.save(state)

        summary = self.ledger.period_summary("week", now=self.now)

        self.assertEqual(summary.transcription_count, 3)
        self.assertEqual([t.total_cost for t in summary.recent_transcriptions], [1.0, 0.5, 2.0])

    def test_unknown_period(self):
        with self.assertRaises(ValueError):
            self.ledger.period_summary("fortnight", now=self.now)

    def test_empty_period_averages(self):
        empty = CostLedger(Path(self.temp_dir.name) / "empty.json")
        summary = empty.period_summary("week", now=self.now)
        self.assertEqual(summary.avg_transcription_cost, 0.0)
        self.assertEqual(summary.avg_search_cost, 0.0)


if __name__ == '__main__':
    unittest.main()
