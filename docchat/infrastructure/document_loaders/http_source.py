import logging

import requests

from docchat.core.errors import UpstreamServiceError

logger = logging.getLogger(__name__)


class HttpCorpusSource:
    """Fetches a single concatenated documentation file (``llms-full.txt`` style)."""

    def __init__(self, url: str, timeout: float = 60.0):
        self.url = url
        self.name = url
        self._timeout = timeout

    def load(self) -> list[tuple[str, str]]:
        logger.info(f"Fetching documentation from {self.url}")
        try:
            resp = requests.get(self.url, timeout=self._timeout)
        except requests.RequestException as e:
            raise UpstreamServiceError("corpus", f"Failed to fetch {self.url}: {e}") from e
        if resp.status_code != 200:
            raise UpstreamServiceError(
                "corpus", f"Failed to fetch {self.url}: {resp.status_code}", resp.status_code
            )
        return [(self.url, resp.text)]
