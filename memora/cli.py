import argparse
import json
import mimetypes
import sys
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .core.config import load_config
from .core.console import console
from .core.exchange import ExchangeRateService
from .core.ledger import CostLedger
from .core.models import ConfigContext, CostPeriod, KnownSpeaker, TranscriptionRecord
from .core.pricing import (
    GEMINI_PRICING, TieredPricing, calculate_token_cost, estimate_transcription_cost,
    format_cost, get_model_display_name
)
from .core.speakers import suggest_for_transcription

logger = logging.getLogger("Memora.CLI")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Memora - transcription costs, search and speaker suggestions.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    parser.add_argument("-c", "--config", help="Path to config.yaml")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("rate", help="Show the current USD -> CAD exchange rate")
    subparsers.add_parser("models", help="List priced models")

    cost_parser = subparsers.add_parser("cost", help="Price a token count")
    cost_parser.add_argument("--input", type=int, required=True, help="Input tokens")
    cost_parser.add_argument("--output", type=int, default=0, help="Output tokens")
    cost_parser.add_argument("--model", help="Model name (default: configured transcription model)")
    cost_parser.add_argument("--rate", type=float, help="USD -> CAD rate (default: fetch)")

    estimate_parser = subparsers.add_parser("estimate", help="Estimate the cost of transcribing an audio file")
    estimate_parser.add_argument("target", help="Audio file or size in bytes")
    estimate_parser.add_argument("--model", help="Transcription model")
    estimate_parser.add_argument("--embedding-model", help="Embedding model")
    estimate_parser.add_argument("--rate", type=float, help="USD -> CAD rate (default: fetch)")

    suggest_parser = subparsers.add_parser("suggest", help="Suggest known speakers for unassigned labels")
    suggest_parser.add_argument("data", help="JSON file with 'transcription', 'unassigned_labels' and 'speakers'")

    report_parser = subparsers.add_parser("report", help="Generate cost & usage report")
    report_parser.add_argument("--period", choices=[p.value for p in CostPeriod], default=CostPeriod.ALL.value)

    transcribe_parser = subparsers.add_parser("transcribe", help="Transcribe an audio file with Gemini")
    transcribe_parser.add_argument("file", help="Input audio file")
    transcribe_parser.add_argument("--model", help="Transcription model")
    transcribe_parser.add_argument("--tags", nargs="*", default=[], help="Tags stored with the transcript")
    transcribe_parser.add_argument("--index", help="JSON search index to append the transcript to")

    search_parser = subparsers.add_parser("search", help="Semantic search over a transcript index")
    search_parser.add_argument("query", help="Search text")
    search_parser.add_argument("--index", required=True, help="JSON search index written by 'transcribe'")
    search_parser.add_argument("--top-k", type=int, help="Number of results")

    return parser


def _exchange_rate(config: ConfigContext, override: Optional[float]) -> float:
    if override is not None:
        return override
    return ExchangeRateService(config.exchange).fetch_rate()


def _ledger(config: ConfigContext) -> CostLedger:
    return CostLedger(Path(config.paths.ledger) if config.paths.ledger else None)


def _load_index(path: Path) -> List[Dict[str, Any]]:
    if not path.exists():
        return []
    with open(path, "r") as f:
        return json.load(f)


def _gemini(config: ConfigContext):
    from .providers.gemini.provider import GeminiProvider
    return GeminiProvider(config.providers.get("gemini"), ExchangeRateService(config.exchange))


def cmd_rate(args, config: ConfigContext) -> None:
    rate = ExchangeRateService(config.exchange).fetch_rate()
    console.print(f"1 USD = [money]{rate:.4f}[/money] {config.exchange.currency}")


def cmd_models(args, config: ConfigContext) -> None:
    from rich.table import Table

    table = Table(title="Priced models (USD per 1M tokens)")
    table.add_column("Model")
    table.add_column("Name")
    table.add_column("Input", justify="right")
    table.add_column("Output", justify="right")
    table.add_column("Threshold", justify="right")
    for model, pricing in GEMINI_PRICING.items():
        if isinstance(pricing, TieredPricing):
            input_rate = f"{pricing.input.small} / {pricing.input.large}"
            output_rate = f"{pricing.output.small} / {pricing.output.large}"
            threshold = f"{pricing.threshold:,}"
        else:
            input_rate, output_rate, threshold = str(pricing.input), str(pricing.output), "-"
        table.add_row(model, get_model_display_name(model), input_rate, output_rate, threshold)
    console.print(table)


def cmd_cost(args, config: ConfigContext) -> None:
    model = args.model or config.models.transcription
    breakdown = calculate_token_cost(args.input, args.output, model, _exchange_rate(config, args.rate))
    console.print(f"Model:              {get_model_display_name(model)}")
    console.print(f"Exchange rate:      {breakdown.exchange_rate:.4f}")
    console.print(f"Transcription cost: {format_cost(breakdown.transcription_cost)}")
    console.print(f"Embedding cost:     {format_cost(breakdown.embedding_cost)}")
    console.print(f"Total:              [money]{format_cost(breakdown.total_cost)}[/money]")
    console.print(f"Per input token:    {breakdown.price_per_input_token:.10f}")
    console.print(f"Per output token:   {breakdown.price_per_output_token:.10f}")


def cmd_estimate(args, config: ConfigContext) -> None:
    target = Path(args.target)
    if target.exists():
        size = target.stat().st_size
    elif args.target.isdigit():
        size = int(args.target)
    else:
        logger.error(f"Not a file or byte count: {args.target}")
        sys.exit(1)

    estimate = estimate_transcription_cost(
        size,
        args.model or config.models.transcription,
        args.embedding_model or config.models.embedding,
        _exchange_rate(config, args.rate),
    )
    console.print(f"Estimated tokens:   {estimate.estimated_input_tokens:,} in / {estimate.estimated_output_tokens:,} out")
    console.print(f"Transcription cost: {format_cost(estimate.transcription_cost)}")
    console.print(f"Embedding cost:     {format_cost(estimate.embedding_cost)}")
    console.print(f"Total:              [money]{format_cost(estimate.total_cost)}[/money]")


def cmd_suggest(args, config: ConfigContext) -> None:
    with open(args.data, "r") as f:
        data = json.load(f)

    current = TranscriptionRecord(**data["transcription"])
    speakers = [KnownSpeaker(**speaker) for speaker in data.get("speakers", [])]
    suggestions = suggest_for_transcription(current, data.get("unassigned_labels", []), speakers)

    output = {
        label: [s.model_dump() for s in label_suggestions]
        for label, label_suggestions in suggestions.items()
    }
    console.console.print_json(json.dumps({"suggestions": output}))


def cmd_report(args, config: ConfigContext) -> None:
    from .core.reporting import CostReporter
    CostReporter(_ledger(config)).print_report(args.period)


def cmd_transcribe(args, config: ConfigContext) -> None:
    file_path = Path(args.file)
    if not file_path.exists():
        logger.error(f"File not found: {file_path}")
        sys.exit(1)

    mime_type, _ = mimetypes.guess_type(file_path.name)
    if not mime_type or not mime_type.startswith(("audio/", "video/")):
        logger.error(f"Unsupported file format: {file_path.suffix}")
        sys.exit(1)

    provider = _gemini(config)
    model = args.model or config.models.transcription

    with console.status(f"Transcribing {file_path.name} with {model}..."):
        transcription = provider.transcribe_audio(file_path.read_bytes(), mime_type, model)
        embedding = provider.generate_embedding(transcription.original_text, config.models.embedding)

    entry = _ledger(config).record_transcription(
        transcription.cost, file_name=file_path.name, embedding_cost=embedding.cost
    )

    if args.index:
        index_path = Path(args.index)
        index = _load_index(index_path)
        index.append({
            "id": str(uuid.uuid4()),
            "file_name": file_path.name,
            "tags": args.tags,
            "created_at": datetime.now().isoformat(),
            "text": transcription.original_text,
            "embedding": embedding.embedding,
        })
        index_path.parent.mkdir(parents=True, exist_ok=True)
        with open(index_path, "w") as f:
            json.dump(index, f)

    console.print(transcription.speaker_transcription or transcription.markdown)
    console.success(
        f"{transcription.speaker_count} speaker(s), cost {format_cost(entry.total_cost)}"
    )


def cmd_search(args, config: ConfigContext) -> None:
    index = _load_index(Path(args.index))
    if not index:
        console.warning("Index is empty.")
        return

    provider = _gemini(config)
    top_k = args.top_k if args.top_k is not None else config.search.top_k
    result = provider.search_similar_transcriptions(
        args.query,
        [item["embedding"] for item in index],
        [item["text"] for item in index],
        top_k=top_k,
        model=config.models.embedding,
        threshold=config.search.threshold,
    )
    _ledger(config).track_search_cost(args.query, result.input_tokens, result.model, result.exchange_rate)

    for hit in result.results:
        item = index[hit.index]
        console.print(f"[money]{hit.similarity:.3f}[/money]  {item.get('file_name') or item.get('id')}: {hit.text[:120]}")
    console.print(f"Search cost: {format_cost(result.search_cost)}")


COMMANDS = {
    "rate": cmd_rate,
    "models": cmd_models,
    "cost": cmd_cost,
    "estimate": cmd_estimate,
    "suggest": cmd_suggest,
    "report": cmd_report,
    "transcribe": cmd_transcribe,
    "search": cmd_search,
}


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return

    config = load_config(args.config)

    from .utils import setup_logging
    debug_mode = args.verbose or config.debug
    console.configure(debug=debug_mode)
    setup_logging(log_dir=config.paths.logs, debug=debug_mode, output_mode=console.output_mode)

    try:
        COMMANDS[args.command](args, config)
    except KeyboardInterrupt:
        console.warning("Interrupted.")
        sys.exit(130)
    except (ValueError, RuntimeError, OSError, KeyError) as e:
        logger.error(f"{args.command} failed: {e}")
        logger.debug("Traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
