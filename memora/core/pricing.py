"""
Token pricing for the Gemini models Memora talks to.

Rates are USD per million tokens; every amount returned from this module is
converted to CAD with the exchange rate supplied by the caller.
"""

import logging
import math
from types import MappingProxyType
from typing import List, Mapping, Tuple

from .models import CostBreakdown, CostEstimate, FlatPricing, PricingEntry, RateTier, TieredPricing

logger = logging.getLogger("Memora.Pricing")

EMBEDDING_MODEL = "text-embedding-004"
DEFAULT_TRANSCRIPTION_MODEL = "gemini-2.0-flash"

TOKENS_PER_MILLION = 1_000_000
CHARS_PER_TOKEN = 4

# Audio size heuristics: 1 MiB is roughly one minute of compressed audio,
# which is roughly 200 prompt tokens and 150 transcript tokens.
BYTES_PER_MINUTE = 1024 * 1024
INPUT_TOKENS_PER_MINUTE = 200
OUTPUT_TOKENS_PER_MINUTE = 150

GEMINI_PRICING: Mapping[str, PricingEntry] = MappingProxyType({
    "gemini-1.5-flash": TieredPricing(
        input=RateTier(small=0.075, large=0.15),
        output=RateTier(small=0.3, large=0.6),
        threshold=128_000,
    ),
    "gemini-1.5-pro": TieredPricing(
        input=RateTier(small=1.25, large=2.5),
        output=RateTier(small=5.0, large=10.0),
        threshold=128_000,
    ),
    # 2.0 and 2.5 flash are not tiered; same rate on both sides of the threshold
    "gemini-2.0-flash": TieredPricing(
        input=RateTier(small=0.1, large=0.1),
        output=RateTier(small=0.4, large=0.4),
        threshold=1_000_000,
    ),
    "gemini-2.0-flash-lite": FlatPricing(input=0.075, output=0.3),
    "gemini-2.5-flash": TieredPricing(
        input=RateTier(small=0.3, large=0.3),
        output=RateTier(small=2.5, large=2.5),
        threshold=1_000_000,
    ),
    "gemini-2.5-pro": TieredPricing(
        input=RateTier(small=1.25, large=2.5),
        output=RateTier(small=10.0, large=15.0),
        threshold=200_000,
    ),
    EMBEDDING_MODEL: FlatPricing(input=0.0, output=0.0),
})

MODEL_DISPLAY_NAMES: Mapping[str, str] = MappingProxyType({
    "gemini-1.5-flash": "Gemini 1.5 Flash",
    "gemini-1.5-pro": "Gemini 1.5 Pro",
    "gemini-2.0-flash": "Gemini 2.0 Flash (Default)",
    "gemini-2.0-flash-lite": "Gemini 2.0 Flash Lite",
    "gemini-2.5-flash": "Gemini 2.5 Flash",
    "gemini-2.5-pro": "Gemini 2.5 Pro",
    EMBEDDING_MODEL: "Text Embedding 004 (Free)",
})


class PricingNotFoundError(ValueError):
    """Raised when a model has no entry in the pricing table."""

    def __init__(self, model: str):
        super().__init__(f"Pricing not found for model: {model}")
        self.model = model


def get_pricing(model: str) -> PricingEntry:
    try:
        return GEMINI_PRICING[model]
    except KeyError:
        raise PricingNotFoundError(model) from None


def _tier_rate(tier: RateTier, tokens: int, threshold: int) -> float:
    # The large rate covers the whole count once the threshold is crossed.
    return tier.small if tokens <= threshold else tier.large


def usd_cost(pricing: PricingEntry, input_tokens: int, output_tokens: int) -> Tuple[float, float]:
    """
    Price a request in USD.

    Args:
        pricing: Entry from the pricing table.
        input_tokens: Prompt token count.
        output_tokens: Completion token count.

    Returns:
        Tuple of (input_cost_usd, output_cost_usd).
    """
    if isinstance(pricing, TieredPricing):
        input_rate = _tier_rate(pricing.input, input_tokens, pricing.threshold)
        output_rate = _tier_rate(pricing.output, output_tokens, pricing.threshold)
    else:
        input_rate = pricing.input
        output_rate = pricing.output

    input_cost = (input_tokens / TOKENS_PER_MILLION) * input_rate
    output_cost = (output_tokens / TOKENS_PER_MILLION) * output_rate
    return input_cost, output_cost


def _validate_usage(input_tokens: int, output_tokens: int, exchange_rate: float) -> None:
    if input_tokens < 0 or output_tokens < 0:
        raise ValueError(
            f"Token counts must be non-negative (input={input_tokens}, output={output_tokens})"
        )
    if not math.isfinite(exchange_rate) or exchange_rate <= 0:
        raise ValueError(f"Exchange rate must be a positive number, got {exchange_rate}")


def _price(input_tokens: int, output_tokens: int, model: str, exchange_rate: float) -> Tuple[float, float, float]:
    """Returns (input_cost_cad, output_cost_cad, total_cost_cad)."""
    pricing = get_pricing(model)
    _validate_usage(input_tokens, output_tokens, exchange_rate)

    input_usd, output_usd = usd_cost(pricing, input_tokens, output_tokens)
    input_cad = input_usd * exchange_rate
    output_cad = output_usd * exchange_rate
    return input_cad, output_cad, input_cad + output_cad


def _breakdown(
    input_tokens: int,
    output_tokens: int,
    model: str,
    exchange_rate: float,
    as_embedding: bool,
) -> CostBreakdown:
    input_cad, output_cad, total_cad = _price(input_tokens, output_tokens, model, exchange_rate)
    logger.debug(
        f"Priced {model}: {input_tokens} in / {output_tokens} out -> {total_cad:.6f} CAD (rate {exchange_rate})"
    )

    return CostBreakdown(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        transcription_cost=0.0 if as_embedding else total_cad,
        embedding_cost=total_cad if as_embedding else 0.0,
        total_cost=total_cad,
        model=model,
        price_per_input_token=input_cad / input_tokens if input_tokens > 0 else 0.0,
        price_per_output_token=output_cad / output_tokens if output_tokens > 0 else 0.0,
        exchange_rate=exchange_rate,
    )


def calculate_token_cost(input_tokens: int, output_tokens: int, model: str, exchange_rate: float) -> CostBreakdown:
    """
    Calculate the CAD cost of a request.

    The embedding model books its total under `embedding_cost`; every other
    model books it under `transcription_cost`.

    Raises:
        PricingNotFoundError: If the model is not in the pricing table.
        ValueError: On negative token counts or a non-positive exchange rate.
    """
    return _breakdown(input_tokens, output_tokens, model, exchange_rate, as_embedding=model == EMBEDDING_MODEL)


def calculate_transcription_cost(input_tokens: int, output_tokens: int, model: str, exchange_rate: float) -> CostBreakdown:
    """Price a generation request; the total is always booked as transcription cost."""
    return _breakdown(input_tokens, output_tokens, model, exchange_rate, as_embedding=False)


def calculate_embedding_cost(input_tokens: int, model: str, exchange_rate: float) -> CostBreakdown:
    """Price an embedding request; embeddings have no output tokens."""
    return _breakdown(input_tokens, 0, model, exchange_rate, as_embedding=True)


def estimate_tokens(text: str) -> int:
    """Rough token count: four characters per token."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_transcription_cost(
    file_size_bytes: int,
    transcription_model: str,
    embedding_model: str,
    exchange_rate: float,
) -> CostEstimate:
    """
    Estimate the cost of transcribing and embedding an audio file from its size.

    The transcript (estimated output tokens) is what gets embedded afterwards,
    so it is priced again as embedding input.
    """
    if file_size_bytes < 0:
        raise ValueError(f"File size must be non-negative, got {file_size_bytes}")

    estimated_minutes = file_size_bytes / BYTES_PER_MINUTE
    estimated_input_tokens = math.ceil(estimated_minutes * INPUT_TOKENS_PER_MINUTE)
    estimated_output_tokens = math.ceil(estimated_minutes * OUTPUT_TOKENS_PER_MINUTE)

    transcription = calculate_token_cost(
        estimated_input_tokens, estimated_output_tokens, transcription_model, exchange_rate
    )
    embedding = calculate_token_cost(estimated_output_tokens, 0, embedding_model, exchange_rate)

    return CostEstimate(
        estimated_input_tokens=estimated_input_tokens,
        estimated_output_tokens=estimated_output_tokens,
        transcription_cost=transcription.total_cost,
        embedding_cost=embedding.total_cost,
        total_cost=transcription.total_cost + embedding.total_cost,
        exchange_rate=exchange_rate,
    )


def estimate_search_cost(query: str, embedding_model: str, exchange_rate: float) -> float:
    return calculate_token_cost(estimate_tokens(query), 0, embedding_model, exchange_rate).total_cost


def format_cost(cost: float) -> str:
    """Format a CAD amount with four decimals, e.g. `$0.0304`."""
    sign = "-" if cost < 0 else ""
    return f"{sign}${abs(cost):,.4f}"


def get_available_transcription_models() -> List[str]:
    return [model for model in GEMINI_PRICING if model != EMBEDDING_MODEL]


def get_available_embedding_models() -> List[str]:
    return [EMBEDDING_MODEL]


def get_model_display_name(model: str) -> str:
    return MODEL_DISPLAY_NAMES.get(model, model)
