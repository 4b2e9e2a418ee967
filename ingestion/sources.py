# /ingestion/sources.py

from abc import ABC, abstractmethod
from typing import List, Optional
import os

from core.logger import get_logger
from core.models import ArticleInput

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = (".txt", ".md")


class DataSource(ABC):
    """Abstract base class for a source of articles."""
    @abstractmethod
    def load_articles(self) -> List[ArticleInput]:
        """Loads articles from the source and returns them as a list."""
        pass


def title_from_text(text: str) -> Optional[str]:
    """The first Markdown heading, if the document has one."""
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith("#"):
            heading = stripped.lstrip("#").strip()
            if heading:
                return heading
    return None


class LocalDirectorySource(DataSource):
    """Loads every text and Markdown file in a local directory as one article."""
    def __init__(self, path: str, article_type: str = "general"):
        if not os.path.isdir(path):
            raise ValueError(f"The path {path} is not a valid directory.")
        self.path = path
        self.article_type = article_type

    def load_articles(self) -> List[ArticleInput]:
        logger.info("Loading articles from local directory", extra={"path": self.path})
        articles = []
        for filename in sorted(os.listdir(self.path)):
            if not filename.lower().endswith(SUPPORTED_EXTENSIONS):
                continue
            file_path = os.path.join(self.path, filename)
            try:
                with open(file_path, encoding="utf-8") as f:
                    content = f.read()
            except (UnicodeDecodeError, OSError):
                logger.error("Skipping unreadable file", extra={"file": filename}, exc_info=True)
                continue
            if not content.strip():
                logger.warning("Skipping empty file", extra={"file": filename})
                continue
            title = title_from_text(content) or os.path.splitext(filename)[0]
            articles.append(ArticleInput(title=title, content=content, article_type=self.article_type))
            logger.info("Loaded article", extra={"file": filename, "title": title})
        return articles
