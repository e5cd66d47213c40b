import logging
from functools import cached_property

import numpy as np
from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder:
    def __init__(self, model_name: str = "intfloat/multilingual-e5-base", batch_size: int = 32):
        self._model_name = model_name
        self._batch_size = batch_size

    @cached_property
    def model(self) -> SentenceTransformer:
        logger.info(f"Loading embedding model: {self._model_name}")
        return SentenceTransformer(self._model_name)

    def warmup(self) -> None:
        _ = self.model
        logger.info("Embedding model warmed up")

    def encode(self, texts: str | list[str]) -> np.ndarray:
        # Unit vectors so cosine distance in the vector store maps to [0, 1] similarity
        return self.model.encode(
            texts,
            batch_size=self._batch_size,
            convert_to_numpy=True,
            normalize_embeddings=True,
        )
