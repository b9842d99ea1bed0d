import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .models import SimilarityResult

logger = logging.getLogger("Memora.Similarity")


def _as_vector(values: Sequence[float], name: str) -> np.ndarray:
    vector = np.asarray(values, dtype=float)
    if vector.ndim != 1 or vector.size == 0:
        raise ValueError(f"{name} must be a non-empty 1-D vector, got shape {vector.shape}")
    return vector


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two equal-length vectors.

    A zero vector has no direction, so its similarity to anything is 0.0.

    Raises:
        ValueError: If the vectors are empty or differ in length.
    """
    vec_a = _as_vector(a, "a")
    vec_b = _as_vector(b, "b")
    if vec_a.shape != vec_b.shape:
        raise ValueError(f"Embedding length mismatch: {vec_a.size} != {vec_b.size}")

    magnitude = np.linalg.norm(vec_a) * np.linalg.norm(vec_b)
    if magnitude == 0:
        return 0.0
    return float(np.clip(np.dot(vec_a, vec_b) / magnitude, -1.0, 1.0))


def rank_by_similarity(
    query_embedding: Sequence[float],
    candidate_embeddings: Sequence[Sequence[float]],
    top_k: int,
    texts: Optional[Sequence[str]] = None,
    threshold: Optional[float] = None,
) -> List[SimilarityResult]:
    """
    Rank candidates by cosine similarity to the query.

    Args:
        query_embedding: The query vector.
        candidate_embeddings: Stored vectors, all the same length as the query.
        top_k: Maximum number of results.
        texts: Optional texts aligned with the candidates.
        threshold: If set, only candidates with similarity strictly above it are kept.

    Returns:
        Up to `top_k` results, highest similarity first. Equal similarities
        keep their original candidate order.
    """
    if top_k < 0:
        raise ValueError(f"top_k must be non-negative, got {top_k}")
    if texts is not None and len(texts) != len(candidate_embeddings):
        raise ValueError(
            f"Got {len(texts)} texts for {len(candidate_embeddings)} candidate embeddings"
        )

    scored = []
    for index, embedding in enumerate(candidate_embeddings):
        similarity = cosine_similarity(query_embedding, embedding)
        if threshold is not None and similarity <= threshold:
            continue
        scored.append(SimilarityResult(
            index=index,
            similarity=similarity,
            text=texts[index] if texts is not None else "",
        ))

    # sorted() is stable, so ties stay in candidate order
    ranked = sorted(scored, key=lambda result: -result.similarity)[:top_k]
    logger.debug(f"Ranked {len(candidate_embeddings)} candidates, returning {len(ranked)}")
    return ranked


def combine_search_results(
    semantic_results: List[Dict[str, Any]],
    keyword_results: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """
    Merge semantic and keyword hits into one list.

    Semantic hits are identified by `id` or `transcription_id`; keyword hits
    already present are dropped, the rest use their `rank` as similarity.
    """
    combined = list(semantic_results)
    seen_ids = {result.get("id") or result.get("transcription_id") for result in semantic_results}

    for keyword_result in keyword_results:
        result_id = keyword_result.get("id")
        if result_id in seen_ids:
            continue
        combined.append({**keyword_result, "similarity": keyword_result.get("rank")})
        seen_ids.add(result_id)

    return sorted(combined, key=lambda result: -(result.get("similarity") or 0))
