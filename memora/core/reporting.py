import logging
from typing import Any, Dict, Optional

from rich.console import Console
from rich.table import Table

from .console import console as console_manager
from .ledger import CostLedger
from .models import CostPeriod
from .pricing import format_cost, get_model_display_name

logger = logging.getLogger("Memora.Reporting")


class CostReporter:
    def __init__(self, ledger: CostLedger):
        self.ledger = ledger

    def generate_summary(self, period: str = CostPeriod.ALL.value) -> Dict[str, Any]:
        """Generate a cost and usage summary for a period (all, today, week, month)."""
        period_summary = self.ledger.period_summary(period, limit=None)
        totals = self.ledger.get_cost_summary()

        by_model: Dict[str, int] = {}
        for entry in period_summary.recent_transcriptions:
            by_model[entry.model] = by_model.get(entry.model, 0) + 1

        return {
            "period": period_summary.period.value,
            "transcription_count": period_summary.transcription_count,
            "search_count": period_summary.search_count,
            "transcription_total": period_summary.transcription_total,
            "search_total": period_summary.search_total,
            "grand_total": period_summary.grand_total,
            "avg_transcription_cost": period_summary.avg_transcription_cost,
            "avg_search_cost": period_summary.avg_search_cost,
            "total_input_tokens": sum(t.input_tokens for t in period_summary.recent_transcriptions),
            "total_output_tokens": sum(t.output_tokens for t in period_summary.recent_transcriptions),
            "transcriptions_by_model": by_model,
            "lifetime_total": totals.grand_total,
            "lifetime_requests": totals.total_requests,
        }

    def print_report(self, period: str = CostPeriod.ALL.value, console: Optional[Console] = None):
        """Print a formatted report."""
        console = console or console_manager.console
        summary = self.generate_summary(period)

        table = Table(title=f"Memora Cost & Usage Report ({summary['period']})")
        table.add_column("Metric")
        table.add_column("Value", justify="right")

        table.add_row("Transcriptions", str(summary["transcription_count"]))
        table.add_row("Transcription cost", format_cost(summary["transcription_total"]))
        table.add_row("Avg cost/transcription", format_cost(summary["avg_transcription_cost"]))
        table.add_row("Searches", str(summary["search_count"]))
        table.add_row("Search cost", format_cost(summary["search_total"]))
        table.add_row("Avg cost/search", format_cost(summary["avg_search_cost"]))
        table.add_row("Tokens (in / out)", f"{summary['total_input_tokens']:,} / {summary['total_output_tokens']:,}")
        table.add_row("Period total", format_cost(summary["grand_total"]))
        table.add_row("Lifetime total", format_cost(summary["lifetime_total"]))
        console.print(table)

        if summary["transcriptions_by_model"]:
            models = Table(title="Transcriptions by Model")
            models.add_column("Model")
            models.add_column("Count", justify="right")
            for model, count in summary["transcriptions_by_model"].items():
                models.add_row(get_model_display_name(model), str(count))
            console.print(models)
