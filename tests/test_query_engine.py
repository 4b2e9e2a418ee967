# /tests/test_query_engine.py

import unittest
from unittest.mock import MagicMock
import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from core.errors import QueryError, ValidationError
from core.graph_assembly import assemble
from core.query_engine import (
    GraphAnswer,
    QueryEngine,
    build_graph_context,
    heuristic_highlights,
    parse_highlight_marker,
    suggest_questions,
)
from tests.fakes import FakeStructuredModel


def sample_view():
    article = {"id": "article-1", "title": "Acme news"}
    alice = {"id": "alice", "name": "Alice", "type": "Person", "description": "Engineer"}
    bob = {"id": "bob", "name": "Bob", "type": "Person"}
    acme = {"id": "acme", "name": "Acme", "type": "Organization"}
    return assemble([
        {"article": article, "entity": alice, "relationship": {"type": "works-at", "description": "since 2020"}, "target": acme},
        {"article": article, "entity": bob, "relationship": None, "target": None},
    ])


class TestQueryEngine(unittest.TestCase):

    def setUp(self):
        self.mock_db_client = MagicMock()
        self.mock_db_client.get_article_graph.return_value = sample_view()

    def test_structured_ids_are_the_primary_highlight_channel(self):
        llm = FakeStructuredModel(result=GraphAnswer(answer="Alice works at Acme.", highlight_ids=["alice", "ghost", "acme"]))
        result = QueryEngine(self.mock_db_client, llm=llm).answer_question("article-1", "Where does Alice work?")

        self.assertEqual(result.answer, "Alice works at Acme.")
        self.assertEqual(result.highlight_node_ids, ["alice", "acme"])
        self.mock_db_client.get_article_graph.assert_called_once_with("article-1")
        self.assertIn("- alice | Alice (Person): Engineer", llm.prompts[0])

    def test_marker_is_used_and_stripped_when_no_structured_ids(self):
        llm = FakeStructuredModel(result={"answer": "Alice and Bob. [HIGHLIGHT: alice, bob]", "highlight_ids": []})
        result = QueryEngine(self.mock_db_client, llm=llm).answer_question("article-1", "Who is here?")

        self.assertEqual(result.answer, "Alice and Bob.")
        self.assertEqual(result.highlight_node_ids, ["alice", "bob"])

    def test_type_keyword_heuristic(self):
        llm = FakeStructuredModel(result=GraphAnswer(answer="Two engineers."))
        result = QueryEngine(self.mock_db_client, llm=llm).answer_question("article-1", "Who are the key people?")
        self.assertEqual(result.highlight_node_ids, ["alice", "bob"])

    def test_no_match_returns_empty_highlights(self):
        llm = FakeStructuredModel(result=GraphAnswer(answer="The graph does not say."))
        result = QueryEngine(self.mock_db_client, llm=llm).answer_question("article-1", "What is the weather?")
        self.assertEqual(result.highlight_node_ids, [])
        self.assertEqual(result.answer, "The graph does not say.")

    def test_model_failure_raises_query_error(self):
        llm = FakeStructuredModel(error=TimeoutError("slow"))
        with self.assertRaises(QueryError):
            QueryEngine(self.mock_db_client, llm=llm).answer_question("article-1", "Anything?")

    def test_missing_reply_raises_query_error(self):
        with self.assertRaises(QueryError):
            QueryEngine(self.mock_db_client, llm=FakeStructuredModel(result=None)).answer_question("article-1", "Anything?")

    def test_empty_question_is_rejected(self):
        with self.assertRaises(ValidationError):
            QueryEngine(self.mock_db_client, llm=FakeStructuredModel()).answer_question("article-1", "  ")
        self.mock_db_client.get_article_graph.assert_not_called()

    def test_example_questions(self):
        questions = QueryEngine(self.mock_db_client).example_questions("article-1")
        self.assertEqual(questions[0], "What organizations are mentioned?")
        self.assertEqual(len(questions), 4)


class TestHighlightHelpers(unittest.TestCase):

    def setUp(self):
        self.entities = sample_view().entity_nodes

    def test_parse_highlight_marker_ignores_unknown_ids(self):
        self.assertEqual(parse_highlight_marker("x [highlight: bob , nobody]", self.entities), ["bob"])

    def test_thai_keyword_selects_people(self):
        self.assertEqual(heuristic_highlights("มีคนกี่คน", "", self.entities), ["alice", "bob"])

    def test_name_occurrence_fallback(self):
        self.assertEqual(heuristic_highlights("Tell me more", "Acme is large", self.entities), ["acme"])

    def test_graph_context_lists_relationships_by_name(self):
        context = build_graph_context(sample_view())
        self.assertIn("- Alice → works-at → Acme: since 2020", context)
        self.assertNotIn("MENTIONS", context)

    def test_suggest_questions_respects_limit(self):
        self.assertEqual(len(suggest_questions(sample_view(), limit=2)), 2)


if __name__ == '__main__':
    unittest.main()
