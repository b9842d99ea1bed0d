"""
Speaker suggestions for unassigned speaker labels.

Five independent heuristics each propose at most one confidence per known
speaker. Proposals for the same speaker are then merged, rewarding
corroboration: several weak signals outrank a single strong one.
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from .models import KnownSpeaker, SpeakerSuggestion, TranscriptionRecord

logger = logging.getLogger("Memora.Speakers")

MIN_CONFIDENCE = 0.5
MAX_SUGGESTIONS = 3
MAX_MERGED_CONFIDENCE = 0.95
CORROBORATION_BONUS = 0.1

RECENT_WINDOW = timedelta(hours=24)
FREQUENT_SPEAKER_MIN_COUNT = 3
MIN_FILENAME_TOKEN_LENGTH = 3

_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_TOKEN_SPLIT_RE = re.compile(r"[_\-\s]")
_NUMBER_RE = re.compile(r"\d+")


def _suggestion(speaker: KnownSpeaker, confidence: float, reason: str) -> SpeakerSuggestion:
    return SpeakerSuggestion(
        speaker_id=speaker.id,
        speaker_name=speaker.name,
        confidence=confidence,
        reason=reason,
    )


def normalize_file_name(file_name: Optional[str]) -> str:
    """Lower-cased name with its last extension stripped."""
    if not file_name:
        return ""
    return _EXTENSION_RE.sub("", file_name).lower()


def file_names_match(base_name: str, current_base_name: str) -> bool:
    if not base_name or not current_base_name:
        return False
    if base_name in current_base_name or current_base_name in base_name:
        return True
    current_parts = set(_TOKEN_SPLIT_RE.split(current_base_name))
    return any(
        len(part) > MIN_FILENAME_TOKEN_LENGTH and part in current_parts
        for part in _TOKEN_SPLIT_RE.split(base_name)
    )


# --- Heuristics ---

def score_tag_overlap(current: TranscriptionRecord, speakers: Iterable[KnownSpeaker]) -> List[SpeakerSuggestion]:
    if not current.tags:
        return []

    current_tags = set(current.tags)
    suggestions = []
    for speaker in speakers:
        common_tags = [
            tag
            for appearance in speaker.appearances
            for tag in appearance.transcription.tags
            if tag in current_tags
        ]
        if common_tags:
            suggestions.append(_suggestion(
                speaker,
                min(0.9, len(common_tags) * 0.3),
                f"Shares {len(common_tags)} tag(s): {', '.join(common_tags[:2])}",
            ))
    return suggestions


def score_filename_similarity(current: TranscriptionRecord, speakers: Iterable[KnownSpeaker]) -> List[SpeakerSuggestion]:
    current_base_name = normalize_file_name(current.file_name)
    if not current_base_name:
        return []

    suggestions = []
    for speaker in speakers:
        matches = [
            appearance
            for appearance in speaker.appearances
            if file_names_match(normalize_file_name(appearance.transcription.file_name), current_base_name)
        ]
        if matches:
            suggestions.append(_suggestion(
                speaker,
                min(0.8, len(matches) * 0.4),
                f"Similar filename patterns ({len(matches)} matches)",
            ))
    return suggestions


def aware_datetime(moment: datetime) -> datetime:
    # Naive timestamps are taken as local time
    return moment if moment.tzinfo is not None else moment.astimezone()


def score_recent_activity(speakers: Iterable[KnownSpeaker], now: Optional[datetime] = None) -> List[SpeakerSuggestion]:
    cutoff = aware_datetime(now or datetime.now()) - RECENT_WINDOW

    suggestions = []
    for speaker in speakers:
        recent = [
            appearance
            for appearance in speaker.appearances
            if aware_datetime(appearance.transcription.created_at) > cutoff
        ]
        if recent:
            suggestions.append(_suggestion(
                speaker,
                min(0.7, len(recent) * 0.3),
                f"Recent activity ({len(recent)} transcriptions today)",
            ))
    return suggestions


def score_frequency(speakers: Iterable[KnownSpeaker]) -> List[SpeakerSuggestion]:
    suggestions = []
    for speaker in speakers:
        count = len(speaker.appearances)
        if count >= FREQUENT_SPEAKER_MIN_COUNT:
            suggestions.append(_suggestion(
                speaker,
                min(0.6, count * 0.05),
                f"Frequently used speaker ({count} transcriptions)",
            ))
    return suggestions


def score_label_position(detected_label: str, speakers: Iterable[KnownSpeaker]) -> List[SpeakerSuggestion]:
    if not _NUMBER_RE.search(detected_label):
        return []

    suggestions = []
    for speaker in speakers:
        count = sum(
            1 for appearance in speaker.appearances
            if appearance.detected_speaker_label == detected_label
        )
        if count:
            suggestions.append(_suggestion(
                speaker,
                min(0.85, count * 0.3),
                f"Often appears as {detected_label} ({count} times)",
            ))
    return suggestions


# --- Combination ---

def merge_suggestions(suggestions: Iterable[SpeakerSuggestion]) -> List[SpeakerSuggestion]:
    """
    Collapse suggestions to one per speaker, in first-seen order.

    A repeat for the same speaker raises the confidence to
    min(0.95, max(existing, new) + 0.1) and appends its reason with " & ".
    The input suggestions are left untouched.
    """
    merged: Dict[str, SpeakerSuggestion] = {}
    for suggestion in suggestions:
        existing = merged.get(suggestion.speaker_id)
        if existing is None:
            merged[suggestion.speaker_id] = suggestion.model_copy()
            continue
        merged[suggestion.speaker_id] = existing.model_copy(update={
            "confidence": min(
                MAX_MERGED_CONFIDENCE,
                max(existing.confidence, suggestion.confidence) + CORROBORATION_BONUS,
            ),
            "reason": f"{existing.reason} & {suggestion.reason}",
        })
    return list(merged.values())


def suggest_speakers(
    detected_label: str,
    current: TranscriptionRecord,
    known_speakers: List[KnownSpeaker],
    now: Optional[datetime] = None,
) -> List[SpeakerSuggestion]:
    """
    Suggest up to three known speakers for a detected speaker label.

    Args:
        detected_label: Label assigned by diarization, e.g. "Speaker 2".
        current: The transcription the label was detected in.
        known_speakers: Speakers with their transcription history.
        now: Reference time for the recency heuristic.

    Returns:
        Suggestions with confidence strictly above 0.5, best first.
    """
    raw = [
        *score_tag_overlap(current, known_speakers),
        *score_filename_similarity(current, known_speakers),
        *score_recent_activity(known_speakers, now),
        *score_frequency(known_speakers),
        *score_label_position(detected_label, known_speakers),
    ]
    candidates = [s for s in merge_suggestions(raw) if s.confidence > MIN_CONFIDENCE]
    ranked = sorted(candidates, key=lambda s: -s.confidence)[:MAX_SUGGESTIONS]

    logger.debug(f"{detected_label}: {len(raw)} raw suggestions, {len(ranked)} kept")
    return ranked


def suggest_for_transcription(
    current: TranscriptionRecord,
    unassigned_labels: Iterable[str],
    known_speakers: List[KnownSpeaker],
    now: Optional[datetime] = None,
) -> Dict[str, List[SpeakerSuggestion]]:
    """Suggestions per unassigned label; labels with no suggestion are left out."""
    suggestions = {}
    for label in unassigned_labels:
        label_suggestions = suggest_speakers(label, current, known_speakers, now)
        if label_suggestions:
            suggestions[label] = label_suggestions
    return suggestions
