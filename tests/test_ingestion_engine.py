# /tests/test_ingestion_engine.py

import unittest
from unittest.mock import MagicMock
import sys
import os

# Add root directory to path to allow imports from 'core' and 'ingestion'
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from core.entity_resolver import EntityResolver
from core.errors import ExtractionError, NotFoundError, ValidationError
from core.models import (
    ArticleDetail,
    ArticleInput,
    Entity,
    EntityDefinition,
    ExtractionResult,
    Ontology,
    Relationship,
)
from ingestion.engine import IngestionEngine


def extraction():
    return ExtractionResult(
        summary="Alice joined Acme.",
        entities=[
            Entity(id="alice", name="Alice", type="Person"),
            Entity(id="ms-alice", name="Ms. Alice", type="Person"),
            Entity(id="acme", name="Acme", type="Organization"),
        ],
        relationships=[
            Relationship(source="alice", target="acme", type="works-at"),
            Relationship(source="ms-alice", target="acme", type="works-at"),
        ],
    )


class TestIngestionEngine(unittest.TestCase):

    def setUp(self):
        self.mock_db_client = MagicMock()
        self.mock_registry = MagicMock()
        self.mock_extractor = MagicMock()
        self.mock_extractor.extract.return_value = extraction()
        self.engine = IngestionEngine(
            self.mock_db_client,
            self.mock_registry,
            extraction_engine=self.mock_extractor,
            resolver=EntityResolver(similarity_threshold=92),
        )

    def test_ingest_extracts_resolves_and_persists(self):
        """
        Tests the full pipeline for a new easy-mode article.
        """
        # --- Act ---
        result = self.engine.ingest(ArticleInput(content="Alice joined Acme.", article_type="investment"))

        # --- Assert ---
        self.assertTrue(result.article_id.startswith("article-"))
        self.assertEqual(result.entities_count, 2)
        self.assertEqual(result.relationships_count, 1)

        call = self.mock_extractor.extract.call_args
        self.assertEqual(call.kwargs["article_type"], "investment")
        self.assertEqual(call.kwargs["mode"], "easy")
        self.assertIsNone(call.kwargs["ontology"])

        article, entities, relationships, ontology_id = self.mock_db_client.create_article_graph.call_args[0]
        self.assertEqual(article.id, result.article_id)
        self.assertEqual(article.title, "Untitled Article")
        self.assertEqual(article.summary, "Alice joined Acme.")
        self.assertEqual([e.id for e in entities], ["alice", "acme"])
        self.assertIsNone(ontology_id)
        self.mock_db_client.replace_article_graph.assert_not_called()

    def test_mode_and_ontology_must_agree(self):
        with self.assertRaises(ValidationError):
            self.engine.ingest(ArticleInput(content="text", mode="advanced"))
        with self.assertRaises(ValidationError):
            self.engine.ingest(ArticleInput(content="text", mode="easy", ontology_id="ontology-1"))
        self.mock_extractor.extract.assert_not_called()

    def test_advanced_mode_loads_the_ontology(self):
        ontology = Ontology(
            id="ontology-1", name="People",
            entities=[EntityDefinition(type="Person", description="A human")],
        )
        self.mock_registry.get.return_value = ontology

        self.engine.ingest(ArticleInput(title="T", content="text", mode="advanced", ontology_id="ontology-1"))

        self.mock_registry.get.assert_called_once_with("ontology-1")
        self.assertIs(self.mock_extractor.extract.call_args.kwargs["ontology"], ontology)
        self.assertEqual(self.mock_db_client.create_article_graph.call_args[0][3], "ontology-1")

    def test_unknown_ontology_is_not_found(self):
        self.mock_registry.get.side_effect = NotFoundError("Ontology 'x' not found")
        with self.assertRaises(NotFoundError):
            self.engine.ingest(ArticleInput(content="text", mode="advanced", ontology_id="x"))
        self.mock_db_client.create_article_graph.assert_not_called()

    def test_failed_extraction_writes_nothing(self):
        self.mock_extractor.extract.side_effect = ExtractionError("model timed out")
        with self.assertRaises(ExtractionError):
            self.engine.ingest(ArticleInput(content="text"))
        self.mock_db_client.create_article_graph.assert_not_called()

    def test_reextract_swaps_the_graph_after_extraction(self):
        self.mock_db_client.get_article.return_value = ArticleDetail(
            id="article-1", title="Old title", content="old", article_type="mystery-investigation", mode="easy",
        )

        result = self.engine.reextract("article-1", "new content")

        self.assertEqual(result.article_id, "article-1")
        self.assertEqual(self.mock_extractor.extract.call_args.kwargs["article_type"], "mystery-investigation")
        article, entities, relationships = self.mock_db_client.replace_article_graph.call_args[0]
        self.assertEqual(article.title, "Old title")
        self.assertEqual(article.content, "new content")
        self.mock_db_client.create_article_graph.assert_not_called()
        self.mock_db_client.delete_article_entities.assert_not_called()

    def test_failed_reextraction_leaves_the_old_graph(self):
        self.mock_db_client.get_article.return_value = ArticleDetail(id="article-1", title="T", content="old")
        self.mock_extractor.extract.side_effect = ExtractionError("bad output")

        with self.assertRaises(ExtractionError):
            self.engine.reextract("article-1", "new content", title="New")

        self.mock_db_client.replace_article_graph.assert_not_called()
        self.mock_db_client.delete_article_entities.assert_not_called()

    def test_reextract_with_deleted_ontology_is_not_found(self):
        self.mock_db_client.get_article.return_value = ArticleDetail(
            id="article-1", title="T", content="old", mode="advanced", ontology_id="ontology-gone",
        )
        self.mock_registry.get.side_effect = NotFoundError("Ontology 'ontology-gone' not found")

        with self.assertRaises(NotFoundError):
            self.engine.reextract("article-1", "new content")
        self.mock_extractor.extract.assert_not_called()

    def test_reextract_requires_content(self):
        with self.assertRaises(ValidationError):
            self.engine.reextract("article-1", "")
        self.mock_db_client.get_article.assert_not_called()


if __name__ == '__main__':
    unittest.main()
