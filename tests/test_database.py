# /tests/test_database.py

import unittest
from unittest.mock import MagicMock
import sys
import os

from neo4j.exceptions import ServiceUnavailable

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from core.database import (
    Neo4jDatabase,
    _ontology_from_record,
    _replace_article_tx,
    _write_article_tx,
)
from core.errors import NotFoundError, StorageError
from core.models import Article, Entity, Relationship


def sample_article():
    return Article(id="article-1", title="Acme", content="Acme hires Alice.", summary="Hiring", ontology_id=None)


class TestNeo4jDatabase(unittest.TestCase):

    def setUp(self):
        """A database wired to a mocked driver; no server is contacted."""
        self.mock_driver = MagicMock()
        self.session_context = self.mock_driver.session.return_value
        self.session_context.__exit__.return_value = False
        self.session = self.session_context.__enter__.return_value
        self.db = Neo4jDatabase(driver=self.mock_driver)

    def test_driver_errors_become_storage_errors_and_release_the_session(self):
        self.session.execute_write.side_effect = ServiceUnavailable("connection refused")

        with self.assertRaises(StorageError):
            self.db.create_article_graph(sample_article(), [], [])

        self.session_context.__exit__.assert_called_once()

    def test_missing_article_graph_raises_not_found(self):
        self.session.execute_read.return_value = []
        with self.assertRaises(NotFoundError):
            self.db.get_article_graph("nope")
        self.session_context.__exit__.assert_called_once()

    def test_get_article_graph_assembles_rows(self):
        self.session.execute_read.return_value = [{
            "article": {"id": "article-1", "title": "Acme"},
            "entity": {"id": "alice", "name": "Alice", "type": "Person"},
            "relationship": None,
            "target": None,
        }]
        view = self.db.get_article_graph("article-1")
        self.assertEqual([n.id for n in view.nodes], ["article-1", "alice"])

    def test_missing_article_raises_not_found(self):
        self.session.execute_read.return_value = None
        with self.assertRaises(NotFoundError):
            self.db.get_article("nope")

    def test_get_article_fills_defaults(self):
        self.session.execute_read.return_value = {
            "id": "article-1", "title": None, "content": "text", "summary": None,
            "articleType": None, "mode": None, "ontologyId": None, "ontologyName": None,
            "createdAt": "2025-01-01T00:00:00Z", "updatedAt": None,
        }
        article = self.db.get_article("article-1")
        self.assertEqual(article.title, "Untitled Article")
        self.assertEqual(article.mode, "easy")
        self.assertEqual(article.article_type, "general")

    def test_missing_ontology_raises_not_found(self):
        self.session.execute_read.return_value = None
        with self.assertRaises(NotFoundError):
            self.db.get_ontology("ontology-x")

    def test_replace_runs_in_one_write_transaction(self):
        article = sample_article()
        self.db.replace_article_graph(article, [], [])
        self.session.execute_write.assert_called_once_with(_replace_article_tx, article, [], [])

    def test_close_closes_the_driver(self):
        self.db.close()
        self.mock_driver.close.assert_called_once()


class TestTransactionFunctions(unittest.TestCase):

    def test_replace_checks_existence_before_deleting(self):
        tx = MagicMock()
        tx.run.return_value.single.return_value = None

        with self.assertRaises(NotFoundError):
            _replace_article_tx(tx, sample_article(), [], [])

        self.assertEqual(tx.run.call_count, 1)

    def test_write_article_keeps_extraction_order(self):
        tx = MagicMock()
        entities = [
            Entity(id="alice", name="Alice", type="Person"),
            Entity(id="acme", name="Acme", type="Organization"),
        ]
        relationships = [Relationship(source="alice", target="acme", type="works-at")]

        _write_article_tx(tx, sample_article(), entities, relationships, None)

        params = {}
        for call in tx.run.call_args_list:
            params.update(call.kwargs)
        self.assertEqual([(e["id"], e["position"]) for e in params["entities"]], [("alice", 0), ("acme", 1)])
        self.assertEqual(params["relationships"][0]["source"], "alice")
        # No ontology link is created for easy-mode articles.
        self.assertFalse(any("USES_ONTOLOGY]->(o)" in call.args[0] for call in tx.run.call_args_list))

    def test_ontology_from_record_drops_positions(self):
        ontology = _ontology_from_record({
            "ontology": {"id": "ontology-1", "name": "Crime", "description": None, "createdAt": "t", "updatedAt": "t"},
            "entities": [{"type": "Suspect", "description": "d", "examples": [], "color": "#000000", "position": 0}],
            "relationships": [{"type": "used", "description": "d", "fromType": "Suspect", "toType": None, "position": 0}],
        })
        self.assertEqual(ontology.entity_types, ["Suspect"])
        self.assertEqual(ontology.relationships[0].from_type, "Suspect")
        self.assertEqual(ontology.description, "")


if __name__ == '__main__':
    unittest.main()
