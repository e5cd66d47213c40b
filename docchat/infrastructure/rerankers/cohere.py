import logging

import requests

logger = logging.getLogger(__name__)

COHERE_RERANK_URL = "https://api.cohere.com/v2/rerank"


class CohereReranker:
    """Reranker backed by the Cohere rerank API."""

    def __init__(self, api_key: str, model: str = "rerank-v3.5", timeout: float = 15.0):
        """Initialize reranker.

        Args:
            api_key: Cohere API key.
            model: Rerank model name.
            timeout: Request timeout in seconds.
        """
        self._api_key = api_key
        self._model = model
        self._timeout = timeout

    def rerank(self, query: str, documents: list[str], top_n: int) -> list[tuple[int, float]]:
        """Score documents by relevance.

        Raises:
            requests.RequestException: Network failure or non-success response.
        """
        if not documents:
            return []

        resp = requests.post(
            COHERE_RERANK_URL,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
            json={
                "model": self._model,
                "query": query,
                "documents": documents,
                "top_n": min(top_n, len(documents)),
                "return_documents": False,
            },
            timeout=self._timeout,
        )
        if not resp.ok:
            logger.error(f"Cohere rerank error {resp.status_code}: {resp.text[:200]}")
        resp.raise_for_status()

        return [(r["index"], float(r["relevance_score"])) for r in resp.json()["results"]]
