"""Embedding vectors: fetching them from the model and the blob encoding.

A stored embedding is the vector's float32 components, each little-endian,
concatenated with no header, length prefix or checksum. Decoding takes the
byte length divided by four as the component count.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np

from .common import CLIError

logger = logging.getLogger(__name__)

EMBEDDING_DTYPE = np.dtype("<f4")


def encode_embedding(values: Sequence[float]) -> bytes:
    """Encode a vector into a byte blob, e.g. for DB storage."""
    return np.asarray(values, dtype=EMBEDDING_DTYPE).tobytes()


def decode_embedding(blob: bytes) -> np.ndarray:
    """Decode a blob back into a float32 vector; trailing partial bytes are dropped."""
    count = len(blob) // EMBEDDING_DTYPE.itemsize
    if count == 0:
        return np.empty(0, dtype=EMBEDDING_DTYPE)
    return np.frombuffer(blob, dtype=EMBEDDING_DTYPE, count=count)


def embed_texts(client, model: str, texts: List[str]) -> List[List[float]]:
    """Embed a batch of texts in one request, one vector per text."""
    response = client.models.embed_content(model=model, contents=texts)
    embeddings = response.embeddings or []
    if not embeddings:
        raise CLIError("got no embedding back from model")
    if len(embeddings) != len(texts):
        raise CLIError(f"expected {len(texts)} embeddings from model, got {len(embeddings)}")

    vectors = []
    for embedding in embeddings:
        if not embedding.values:
            raise CLIError("got no embedding back from model")
        vectors.append(list(embedding.values))
    logger.debug("Embedded %d text(s) with %s", len(texts), model)
    return vectors
