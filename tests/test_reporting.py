import unittest
import io
import sys
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

from rich.console import Console

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from memora.core.ledger import CostLedger
from memora.core.models import LedgerState, SearchCostEntry, TranscriptionCostEntry
from memora.core.reporting import CostReporter


class TestCostReporter(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.ledger = CostLedger(Path(self.temp_dir.name) / "ledger.json")
        now = datetime.now()
        self.ledger.save(LedgerState(
            transcriptions=[
                TranscriptionCostEntry(created_at=now - timedelta(minutes=5), model="gemini-2.0-flash",
                                       input_tokens=1_000, output_tokens=400, transcription_cost=0.2,
                                       total_cost=0.2, exchange_rate=1.35),
                TranscriptionCostEntry(created_at=now - timedelta(minutes=1), model="gemini-2.5-pro",
                                       input_tokens=2_000, output_tokens=600, transcription_cost=0.6,
                                       total_cost=0.6, exchange_rate=1.35),
                TranscriptionCostEntry(created_at=now - timedelta(days=45), model="gemini-2.0-flash",
                                       input_tokens=500, output_tokens=100, transcription_cost=1.0,
                                       total_cost=1.0, exchange_rate=1.35),
            ],
            searches=[
                SearchCostEntry(created_at=now - timedelta(minutes=2), query="q", tokens=4, cost=0.1,
                                model="text-embedding-004", exchange_rate=1.35),
            ],
        ))
        self.ledger.update_cost_summary(1.8, 0.0, 0.1)
        self.reporter = CostReporter(self.ledger)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_generate_summary_for_week(self):
        summary = self.reporter.generate_summary("week")

        self.assertEqual(summary["period"], "week")
        self.assertEqual(summary["transcription_count"], 2)
        self.assertEqual(summary["search_count"], 1)
        self.assertAlmostEqual(summary["transcription_total"], 0.8)
        self.assertAlmostEqual(summary["grand_total"], 0.9)
        self.assertAlmostEqual(summary["avg_transcription_cost"], 0.4)
        self.assertEqual(summary["total_input_tokens"], 3_000)
        self.assertEqual(summary["total_output_tokens"], 1_000)
        self.assertEqual(summary["transcriptions_by_model"], {"gemini-2.5-pro": 1, "gemini-2.0-flash": 1})
        self.assertAlmostEqual(summary["lifetime_total"], 1.9)
        self.assertEqual(summary["lifetime_requests"], 1)

    def test_generate_summary_for_all(self):
        summary = self.reporter.generate_summary()
        self.assertEqual(summary["transcription_count"], 3)
        self.assertEqual(summary["transcriptions_by_model"]["gemini-2.0-flash"], 2)

    def test_invalid_period(self):
        with self.assertRaises(ValueError):
            self.reporter.generate_summary("yesterday")

    def test_print_report(self):
        output = io.StringIO()
        console = Console(file=output, width=120)

        self.reporter.print_report("all", console=console)

        text = output.getvalue()
        self.assertIn("Memora Cost & Usage Report (all)", text)
        self.assertIn("$1.8000", text)
        self.assertIn("Gemini 2.5 Pro", text)


if __name__ == '__main__':
    unittest.main()
