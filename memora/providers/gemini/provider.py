import logging
from typing import List, Optional, Sequence

import google.generativeai as genai

from ...core.exchange import ExchangeRateService
from ...core.models import EmbeddingResult, SearchResult, TranscriptionResult
from ...core.pricing import (
    DEFAULT_TRANSCRIPTION_MODEL, EMBEDDING_MODEL,
    calculate_embedding_cost, calculate_transcription_cost, estimate_tokens
)
from ...core.similarity import rank_by_similarity
from ...prompts import TRANSCRIPTION_PROMPT
from ...response_parser import ResponseParser
from ..base import Provider
from . import GeminiConfig

logger = logging.getLogger("Memora.Plugin.Gemini")

# Gemini gives no confidence score for transcripts
DEFAULT_TRANSCRIPT_CONFIDENCE = 0.95


class GeminiProvider(Provider):
    def __init__(self, config: Optional[GeminiConfig] = None, exchange: Optional[ExchangeRateService] = None):
        super().__init__(config or GeminiConfig())
        self.exchange = exchange or ExchangeRateService()

        api_key = self.config.resolve_api_key()
        if not api_key:
            raise ValueError("Gemini API Key not found in config or environment (GEMINI_API_KEY / GOOGLE_API_KEY).")
        genai.configure(api_key=api_key)

    @property
    def name(self) -> str:
        return "gemini"

    def transcribe_audio(
        self,
        audio: bytes,
        mime_type: str,
        model: str = DEFAULT_TRANSCRIPTION_MODEL,
    ) -> TranscriptionResult:
        """
        Transcribe audio with speaker detection.

        Args:
            audio: Raw audio bytes, sent inline.
            mime_type: MIME type of the audio, e.g. "audio/mpeg".
            model: Gemini model name; must be in the pricing table.

        Returns:
            Transcript, speaker information and the CAD cost of the request.
        """
        try:
            generative_model = genai.GenerativeModel(model)
            response = generative_model.generate_content(
                [{"mime_type": mime_type, "data": audio}, TRANSCRIPTION_PROMPT],
                request_options={"timeout": self.config.request_timeout},
            )
            text = response.text

            usage = getattr(response, "usage_metadata", None)
            input_tokens = getattr(usage, "prompt_token_count", 0) or 0
            output_tokens = getattr(usage, "candidates_token_count", 0) or 0

            exchange_rate = self.exchange.fetch_rate()
            cost = calculate_transcription_cost(input_tokens, output_tokens, model, exchange_rate)
        except Exception as e:
            logger.error(f"Error transcribing audio with {model}: {e}")
            raise RuntimeError("Failed to transcribe audio") from e

        detection = ResponseParser.parse_speaker_detection(text)
        logger.info(
            f"Transcribed with {model}: {input_tokens} in / {output_tokens} out, "
            f"{detection.speaker_count} speaker(s), {cost.total_cost:.6f} CAD"
        )

        return TranscriptionResult(
            original_text=detection.original_text,
            markdown=detection.markdown,
            confidence=DEFAULT_TRANSCRIPT_CONFIDENCE,
            cost=cost,
            speaker_count=detection.speaker_count,
            has_speaker_diarization=detection.has_speaker_diarization,
            speaker_transcription=detection.speaker_transcription,
            speaker_metadata=detection.speaker_metadata,
        )

    def generate_embedding(self, text: str, model: str = EMBEDDING_MODEL) -> EmbeddingResult:
        try:
            result = genai.embed_content(model=f"models/{model}", content=text)
            # The embedding endpoint reports no usage, so tokens are estimated
            input_tokens = estimate_tokens(text)
            exchange_rate = self.exchange.fetch_rate()
            cost = calculate_embedding_cost(input_tokens, model, exchange_rate)
        except Exception as e:
            logger.error(f"Error generating embedding with {model}: {e}")
            raise RuntimeError("Failed to generate embedding") from e

        return EmbeddingResult(
            embedding=list(result["embedding"]),
            input_tokens=input_tokens,
            output_tokens=0,
            cost=cost.total_cost,
            model=model,
            exchange_rate=exchange_rate,
        )

    def search_similar_transcriptions(
        self,
        query: str,
        embeddings: Sequence[Sequence[float]],
        texts: List[str],
        top_k: int = 5,
        model: str = EMBEDDING_MODEL,
        threshold: Optional[float] = None,
    ) -> SearchResult:
        """Embed the query and rank stored transcript embeddings against it."""
        query_embedding = self.generate_embedding(query, model)
        results = rank_by_similarity(
            query_embedding.embedding, embeddings, top_k, texts=texts, threshold=threshold
        )

        return SearchResult(
            results=results,
            search_cost=query_embedding.cost,
            input_tokens=query_embedding.input_tokens,
            model=query_embedding.model,
            exchange_rate=query_embedding.exchange_rate,
        )
