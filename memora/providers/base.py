from abc import ABC, abstractmethod
from typing import List, Sequence
from pydantic import BaseModel

from memora.core.models import EmbeddingResult, SearchResult, TranscriptionResult

class ProviderConfig(BaseModel):
    """Base configuration for all providers."""
    pass

class Provider(ABC):
    """
    Abstract base class for generative-AI providers.

    Attributes:
        config (ProviderConfig): The configuration object for this provider.
    """

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the unique name of the provider."""
        pass

    @abstractmethod
    def transcribe_audio(self, audio: bytes, mime_type: str, model: str) -> TranscriptionResult:
        """Transcribe audio with speaker detection and price the request."""
        pass

    @abstractmethod
    def generate_embedding(self, text: str, model: str) -> EmbeddingResult:
        pass

    @abstractmethod
    def search_similar_transcriptions(
        self,
        query: str,
        embeddings: Sequence[Sequence[float]],
        texts: List[str],
        top_k: int,
        model: str,
    ) -> SearchResult:
        pass
