"""Response parsing utilities for Memora."""

import json
import logging
import re
from typing import Any, Dict, Optional

from pydantic import BaseModel

logger = logging.getLogger("Memora.ResponseParser")

_FENCE_RE = re.compile(r"```json\n?|\n?```")


class SpeakerDetection(BaseModel):
    """Transcript text plus speaker information extracted from a model response."""
    original_text: str
    markdown: str
    speaker_count: int = 1
    has_speaker_diarization: bool = False
    speaker_transcription: Optional[str] = None
    speaker_metadata: Optional[Dict[str, Any]] = None


class ResponseParser:
    """Handles parsing of AI responses into structured data."""

    @staticmethod
    def clean_json(json_str: str) -> str:
        """
        Remove markdown code fences from a JSON string.

        Args:
            json_str: JSON string potentially wrapped in markdown

        Returns:
            Cleaned JSON string
        """
        return _FENCE_RE.sub("", json_str).strip()

    @staticmethod
    def single_speaker(text: str) -> SpeakerDetection:
        return SpeakerDetection(original_text=text, markdown=text)

    @staticmethod
    def parse_speaker_detection(text: str) -> SpeakerDetection:
        """
        Parse the speaker-detection JSON returned for a transcription request.

        Responses that are not a JSON object are kept verbatim as a single
        speaker transcript.
        """
        try:
            parsed = json.loads(ResponseParser.clean_json(text))
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse speaker detection JSON, using fallback: {e}")
            return ResponseParser.single_speaker(text)

        if not isinstance(parsed, dict):
            logger.warning(f"Speaker detection response is a {type(parsed).__name__}, not an object; using fallback")
            return ResponseParser.single_speaker(text)

        regular = parsed.get("regularTranscription") or text
        metadata = parsed.get("speakerMetadata")

        return SpeakerDetection(
            original_text=regular,
            markdown=regular,
            speaker_count=parsed.get("speakerCount") or 1,
            has_speaker_diarization=bool(parsed.get("hasSpeakerDiarization")),
            speaker_transcription=parsed.get("speakerTranscription") or None,
            speaker_metadata=metadata if isinstance(metadata, dict) and metadata else None,
        )
