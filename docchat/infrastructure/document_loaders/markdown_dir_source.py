import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class MarkdownDirectorySource:
    """Supplementary ``*.md`` files kept next to the deployment."""

    EXTENSIONS = {".md"}

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.name = str(self.directory)

    def supports(self, file_path: Path) -> bool:
        return file_path.suffix.lower() in self.EXTENSIONS

    def load(self) -> list[tuple[str, str]]:
        if not self.directory.is_dir():
            logger.debug(f"Supplementary directory {self.directory} not found, skipping")
            return []

        documents = []
        for file_path in sorted(self.directory.iterdir()):
            if file_path.is_file() and self.supports(file_path):
                documents.append((str(file_path), file_path.read_text(encoding="utf-8")))

        logger.info(f"Loaded {len(documents)} supplementary files from {self.directory}")
        return documents
