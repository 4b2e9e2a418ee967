# /run_ingestion.py

import argparse
import os
from dotenv import load_dotenv

from core.article_types import ARTICLE_TYPES
from core.database import Neo4jDatabase
from core.errors import StoryGraphError
from core.logger import get_logger
from core.ontology import OntologyRegistry
from ingestion.engine import IngestionEngine
from ingestion.sources import LocalDirectorySource

logger = get_logger(__name__)


def main():
    """
    Batch-ingests every .txt/.md file in a directory as an easy-mode article.
    """
    load_dotenv()

    parser = argparse.ArgumentParser(description="Ingest a directory of articles into the knowledge graph.")
    parser.add_argument(
        "directory", nargs="?",
        default=os.path.join(os.path.dirname(os.path.abspath(__file__)), "data"),
    )
    parser.add_argument("--article-type", default="general", choices=sorted(ARTICLE_TYPES))
    args = parser.parse_args()

    articles = LocalDirectorySource(args.directory, article_type=args.article_type).load_articles()
    if not articles:
        logger.warning("No articles found. Exiting ingestion.", extra={"directory": args.directory})
        return

    db = Neo4jDatabase()
    try:
        db.ensure_schema()
        engine = IngestionEngine(db, OntologyRegistry(db))
        failures = 0
        for article in articles:
            try:
                result = engine.ingest(article)
            except StoryGraphError as e:
                failures += 1
                logger.error("Failed to ingest article", extra={"title": article.title, "error": str(e)})
                continue
            logger.info(
                "Article ingested",
                extra={
                    "title": article.title,
                    "article_id": result.article_id,
                    "entities": result.entities_count,
                    "relationships": result.relationships_count,
                },
            )
        logger.info("--- Ingestion process complete. ---", extra={"articles": len(articles), "failures": failures})
    finally:
        db.close()


if __name__ == '__main__':
    main()
