from enum import Enum
from typing import Dict, List, Optional, Any, Union
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class RateTier(BaseModel):
    """USD per million tokens below/at and above a tier threshold."""
    model_config = ConfigDict(frozen=True)

    small: float
    large: float

class FlatPricing(BaseModel):
    model_config = ConfigDict(frozen=True)

    input: float = 0.0
    output: float = 0.0

class TieredPricing(BaseModel):
    """
    Tiered pricing: counts at or below `threshold` use the small rate,
    counts above it use the large rate for the whole count.
    """
    model_config = ConfigDict(frozen=True)

    input: RateTier
    output: RateTier
    threshold: int

PricingEntry = Union[TieredPricing, FlatPricing]

class TokenUsage(BaseModel):
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    model: str

class CostBreakdown(BaseModel):
    """Cost of a single request, amounts in CAD."""
    input_tokens: int
    output_tokens: int
    transcription_cost: float = 0.0
    embedding_cost: float = 0.0
    total_cost: float = 0.0
    model: str
    price_per_input_token: float = 0.0
    price_per_output_token: float = 0.0
    exchange_rate: float

class CostEstimate(BaseModel):
    estimated_input_tokens: int
    estimated_output_tokens: int
    transcription_cost: float
    embedding_cost: float
    total_cost: float
    exchange_rate: float

class SimilarityResult(BaseModel):
    index: int
    similarity: float
    text: str = ""

class TranscriptionRecord(BaseModel):
    id: str
    file_name: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    original_text: str = ""
    created_at: datetime

class SpeakerAppearance(BaseModel):
    detected_speaker_label: str
    transcription: TranscriptionRecord

class KnownSpeaker(BaseModel):
    id: str
    name: str
    appearances: List[SpeakerAppearance] = Field(default_factory=list)

class SpeakerSuggestion(BaseModel):
    speaker_id: str
    speaker_name: str
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str

class TranscriptionResult(BaseModel):
    original_text: str
    markdown: str
    confidence: float = 0.95
    cost: CostBreakdown
    speaker_count: int = 1
    has_speaker_diarization: bool = False
    speaker_transcription: Optional[str] = None
    speaker_metadata: Optional[Dict[str, Any]] = None

class EmbeddingResult(BaseModel):
    embedding: List[float]
    input_tokens: int
    output_tokens: int = 0
    cost: float
    model: str
    exchange_rate: float

class SearchResult(BaseModel):
    results: List[SimilarityResult] = Field(default_factory=list)
    search_cost: float = 0.0
    input_tokens: int = 0
    model: str
    exchange_rate: float

class CostPeriod(str, Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"

class CostSummary(BaseModel):
    total_transcription_cost: float = 0.0
    total_embedding_cost: float = 0.0
    total_search_cost: float = 0.0
    grand_total: float = 0.0
    total_requests: int = 0
    updated_at: Optional[datetime] = None

class TranscriptionCostEntry(BaseModel):
    created_at: datetime
    file_name: Optional[str] = None
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    transcription_cost: float = 0.0
    embedding_cost: float = 0.0
    total_cost: float = 0.0
    exchange_rate: float

class SearchCostEntry(BaseModel):
    created_at: datetime
    query: str
    tokens: int
    cost: float
    model: str
    exchange_rate: float

class LedgerState(BaseModel):
    """Everything the cost ledger persists."""
    summary: CostSummary = Field(default_factory=CostSummary)
    transcriptions: List[TranscriptionCostEntry] = Field(default_factory=list)
    searches: List[SearchCostEntry] = Field(default_factory=list)

class PeriodCostSummary(BaseModel):
    period: CostPeriod
    transcription_total: float = 0.0
    search_total: float = 0.0
    grand_total: float = 0.0
    transcription_count: int = 0
    search_count: int = 0
    avg_transcription_cost: float = 0.0
    avg_search_cost: float = 0.0
    recent_transcriptions: List[TranscriptionCostEntry] = Field(default_factory=list)
    recent_searches: List[SearchCostEntry] = Field(default_factory=list)

# --- Configuration ---

class ModelsConfig(BaseModel):
    transcription: str = "gemini-2.0-flash"
    embedding: str = "text-embedding-004"

class ExchangeConfig(BaseModel):
    api_url: str = "https://api.exchangerate-api.com/v4/latest/USD"
    currency: str = "CAD"
    fallback_rate: float = Field(default=1.35, gt=0)
    timeout_seconds: float = 10.0
    cache_ttl_seconds: float = 0.0

class SearchConfig(BaseModel):
    top_k: int = Field(default=5, ge=0)
    threshold: Optional[float] = None

class PathsConfig(BaseModel):
    ledger: Optional[str] = None
    logs: Optional[str] = None

class ConfigContext(BaseModel):
    debug: bool = False
    models: ModelsConfig = Field(default_factory=ModelsConfig)
    exchange: ExchangeConfig = Field(default_factory=ExchangeConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    providers: Dict[str, Any] = Field(default_factory=dict)
