import json
import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Union

from .models import (
    CostBreakdown, CostPeriod, CostSummary, LedgerState,
    PeriodCostSummary, SearchCostEntry, TranscriptionCostEntry
)
from .pricing import calculate_token_cost
from .speakers import aware_datetime

logger = logging.getLogger("Memora.Ledger")

LEDGER_FILENAME = "ledger.json"


def default_ledger_path() -> Path:
    xdg_state = os.environ.get("XDG_STATE_HOME")
    if xdg_state:
        return Path(xdg_state) / "memora" / LEDGER_FILENAME
    return Path.home() / ".local" / "state" / "memora" / LEDGER_FILENAME


class CostLedger:
    """
    Running cost totals plus per-request rows, stored as a single JSON file.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else default_ledger_path()

    def load(self) -> LedgerState:
        if not self.path.exists():
            return LedgerState()
        with open(self.path, "r") as f:
            data = json.load(f)
        return LedgerState(**data)

    def save(self, state: LedgerState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        with open(tmp_path, "w") as f:
            f.write(state.model_dump_json(indent=2))
        tmp_path.replace(self.path)

    @staticmethod
    def _add_to_summary(
        summary: CostSummary,
        transcription_cost: float,
        embedding_cost: float,
        search_cost: float,
    ) -> None:
        summary.total_transcription_cost += transcription_cost
        summary.total_embedding_cost += embedding_cost
        summary.total_search_cost += search_cost
        summary.grand_total += transcription_cost + embedding_cost + search_cost
        summary.total_requests += 1
        summary.updated_at = datetime.now()

    def update_cost_summary(
        self,
        transcription_cost: float,
        embedding_cost: float,
        search_cost: float = 0.0,
    ) -> CostSummary:
        """Add one request's costs to the running totals."""
        state = self.load()
        self._add_to_summary(state.summary, transcription_cost, embedding_cost, search_cost)
        self.save(state)
        return state.summary

    def record_transcription(
        self,
        breakdown: CostBreakdown,
        file_name: Optional[str] = None,
        embedding_cost: float = 0.0,
    ) -> TranscriptionCostEntry:
        """
        Store the cost of a transcription and its embedding.

        Args:
            breakdown: Cost of the transcription request.
            file_name: Name of the transcribed audio file.
            embedding_cost: Cost of embedding the transcript, if any.
        """
        entry = TranscriptionCostEntry(
            created_at=datetime.now(),
            file_name=file_name,
            model=breakdown.model,
            input_tokens=breakdown.input_tokens,
            output_tokens=breakdown.output_tokens,
            transcription_cost=breakdown.transcription_cost,
            embedding_cost=breakdown.embedding_cost + embedding_cost,
            total_cost=breakdown.total_cost + embedding_cost,
            exchange_rate=breakdown.exchange_rate,
        )

        state = self.load()
        state.transcriptions.append(entry)
        self._add_to_summary(state.summary, entry.transcription_cost, entry.embedding_cost, 0.0)
        self.save(state)

        logger.info(f"Recorded transcription cost {entry.total_cost:.6f} CAD for {file_name or 'untitled'}")
        return entry

    def track_search_cost(self, query: str, tokens: int, model: str, exchange_rate: float) -> float:
        """Price a search query embedding, store it and return its CAD cost."""
        cost = calculate_token_cost(tokens, 0, model, exchange_rate).total_cost

        state = self.load()
        state.searches.append(SearchCostEntry(
            created_at=datetime.now(),
            query=query,
            tokens=tokens,
            cost=cost,
            model=model,
            exchange_rate=exchange_rate,
        ))
        self._add_to_summary(state.summary, 0.0, 0.0, cost)
        self.save(state)
        return cost

    def get_cost_summary(self) -> CostSummary:
        return self.load().summary

    def get_recent_search_costs(self, limit: int = 10) -> List[SearchCostEntry]:
        searches = sorted(self.load().searches, key=lambda s: aware_datetime(s.created_at), reverse=True)
        return searches[:limit]

    @staticmethod
    def period_start(period: CostPeriod, now: datetime) -> Optional[datetime]:
        if period == CostPeriod.TODAY:
            return now.replace(hour=0, minute=0, second=0, microsecond=0)
        if period == CostPeriod.WEEK:
            return now - timedelta(days=7)
        if period == CostPeriod.MONTH:
            return now - timedelta(days=30)
        return None

    def period_summary(
        self,
        period: Union[CostPeriod, str] = CostPeriod.ALL,
        limit: Optional[int] = 10,
        now: Optional[datetime] = None,
    ) -> PeriodCostSummary:
        """
        Totals and averages for a period, with the most recent rows.

        Raises:
            ValueError: If `period` is not one of all, today, week, month.
        """
        period = CostPeriod(period)
        # Naive timestamps, stored or passed in, are local time
        start = self.period_start(period, aware_datetime(now or datetime.now()))
        state = self.load()

        transcriptions = [
            t for t in state.transcriptions if start is None or aware_datetime(t.created_at) >= start
        ]
        searches = [s for s in state.searches if start is None or aware_datetime(s.created_at) >= start]
        transcriptions.sort(key=lambda t: aware_datetime(t.created_at), reverse=True)
        searches.sort(key=lambda s: aware_datetime(s.created_at), reverse=True)

        transcription_total = sum(t.total_cost for t in transcriptions)
        search_total = sum(s.cost for s in searches)

        return PeriodCostSummary(
            period=period,
            transcription_total=transcription_total,
            search_total=search_total,
            grand_total=transcription_total + search_total,
            transcription_count=len(transcriptions),
            search_count=len(searches),
            avg_transcription_cost=transcription_total / len(transcriptions) if transcriptions else 0.0,
            avg_search_cost=search_total / len(searches) if searches else 0.0,
            recent_transcriptions=transcriptions[:limit],
            recent_searches=searches[:limit],
        )
