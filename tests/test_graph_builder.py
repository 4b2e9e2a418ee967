# /tests/test_graph_builder.py

import unittest
import sys
import os

from pydantic import ValidationError as PydanticValidationError

# Add root directory to path to allow imports from 'core'
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from core.errors import ExtractionError, ValidationError
from core.graph_builder import (
    ExtractionEngine,
    build_extraction_schema,
    resolve_type_constraint,
)
from core.models import EntityDefinition, Ontology, RelationshipDefinition
from tests.fakes import FakeStructuredModel

LONG_TEXT = "Alice Smith joined Acme Corp in Bangkok as chief engineer. " * 5


def crime_ontology():
    return Ontology(
        id="ontology-crime",
        name="Crime scene",
        entities=[
            EntityDefinition(type="Suspect", description="A person under suspicion", examples=["The butler"]),
            EntityDefinition(type="Weapon", description="An object used in the crime"),
        ],
        relationships=[
            RelationshipDefinition(type="used", description="Suspect used a weapon", from_type="Suspect", to_type="Weapon"),
        ],
    )


class TestExtractionSchema(unittest.TestCase):

    def test_easy_mode_entity_type_is_a_closed_enumeration(self):
        schema = build_extraction_schema(resolve_type_constraint("easy", "general"))

        accepted = schema.model_validate({
            "summary": "s",
            "entities": [{"id": "alice", "name": "Alice", "type": "Person"}],
        })
        self.assertEqual(accepted.entities[0].type, "Person")

        with self.assertRaises(PydanticValidationError):
            schema.model_validate({
                "summary": "s",
                "entities": [{"id": "falcon", "name": "Falcon 9", "type": "Spaceship"}],
            })

    def test_easy_mode_keeps_relationship_type_free(self):
        schema = build_extraction_schema(resolve_type_constraint("easy", "investment"))
        parsed = schema.model_validate({
            "summary": "s",
            "entities": [{"id": "acme", "name": "Acme", "type": "Company"}],
            "relationships": [{"source": "acme", "target": "acme", "type": "anything-goes"}],
        })
        self.assertEqual(parsed.relationships[0].type, "anything-goes")

    def test_advanced_mode_uses_ontology_types(self):
        constraint = resolve_type_constraint("advanced", ontology=crime_ontology())
        self.assertEqual(constraint.entity_types, ("Suspect", "Weapon"))
        self.assertIn("The butler", constraint.instructions)

        schema = build_extraction_schema(constraint)
        with self.assertRaises(PydanticValidationError):
            schema.model_validate({
                "summary": "s",
                "entities": [{"id": "b", "name": "Butler", "type": "Suspect"}],
                "relationships": [{"source": "b", "target": "b", "type": "owns"}],
            })

    def test_advanced_mode_without_ontology_is_rejected(self):
        with self.assertRaises(ValidationError):
            resolve_type_constraint("advanced", ontology=None)

    def test_unknown_article_type_falls_back_to_general(self):
        constraint = resolve_type_constraint("easy", "poetry")
        self.assertIn("Person", constraint.entity_types)
        self.assertNotIn("Evidence", constraint.entity_types)


class TestExtractionEngine(unittest.TestCase):

    def test_extract_validates_the_model_output(self):
        """
        Out-of-enumeration entities are dropped, duplicate ids keep the first
        occurrence and relationships to missing entities disappear.
        """
        # --- Arrange ---
        llm = FakeStructuredModel(result={
            "summary": "  Alice joined Acme.  ",
            "entities": [
                {"id": "alice-smith", "name": "Alice Smith", "type": "Person", "sentiment": "positive"},
                {"id": "acme-corp", "name": "Acme Corp", "type": "Organization"},
                {"id": "alice-smith", "name": "Alice", "type": "Person"},
                {"id": "rocket", "name": "Rocket", "type": "Spaceship"},
            ],
            "relationships": [
                {"source": "alice-smith", "target": "acme-corp", "type": "works-at", "strength": "strong"},
                {"source": "alice-smith", "target": "rocket", "type": "builds"},
                {"source": "ghost", "target": "acme-corp", "type": "haunts"},
            ],
        })
        engine = ExtractionEngine(llm=llm)

        # --- Act ---
        result = engine.extract(LONG_TEXT, title="Alice joins Acme")

        # --- Assert ---
        self.assertEqual(result.summary, "Alice joined Acme.")
        self.assertEqual([e.id for e in result.entities], ["alice-smith", "acme-corp"])
        self.assertEqual(result.entities[0].name, "Alice Smith")
        self.assertEqual(len(result.relationships), 1)
        self.assertEqual(result.relationships[0].type, "works-at")
        self.assertIn("Article Title: Alice joins Acme", llm.prompts[0])
        self.assertIn("Technology", llm.prompts[0])

    def test_zero_entities_for_long_text_is_an_error(self):
        engine = ExtractionEngine(llm=FakeStructuredModel(result={"summary": "nothing", "entities": []}))
        with self.assertRaises(ExtractionError):
            engine.extract(LONG_TEXT)

    def test_zero_entities_for_short_text_is_accepted(self):
        engine = ExtractionEngine(llm=FakeStructuredModel(result={"summary": "hi", "entities": []}))
        result = engine.extract("Hello there.")
        self.assertEqual(result.entities, [])

    def test_model_failure_raises_extraction_error(self):
        engine = ExtractionEngine(llm=FakeStructuredModel(error=RuntimeError("deadline exceeded")))
        with self.assertRaises(ExtractionError):
            engine.extract(LONG_TEXT)

    def test_unparsable_reply_raises_extraction_error(self):
        engine = ExtractionEngine(llm=FakeStructuredModel(result=None))
        with self.assertRaises(ExtractionError):
            engine.extract(LONG_TEXT)

    def test_empty_text_is_rejected_before_calling_the_model(self):
        llm = FakeStructuredModel(result={})
        with self.assertRaises(ValidationError):
            ExtractionEngine(llm=llm).extract("   ")
        self.assertEqual(llm.prompts, [])

    def test_advanced_mode_returns_only_ontology_types(self):
        health = Ontology(
            id="ontology-health",
            name="Health",
            entities=[EntityDefinition(type="Patient", description="Someone receiving care")],
        )
        llm = FakeStructuredModel(result={
            "summary": "A visit.",
            "entities": [
                {"id": "john", "name": "John", "type": "Patient"},
                {"id": "dr-lee", "name": "Dr. Lee", "type": "Person"},
            ],
        })
        result = ExtractionEngine(llm=llm).extract("Patient John visited.", "Health", mode="advanced", ontology=health)

        self.assertEqual([(e.id, e.type) for e in result.entities], [("john", "Patient")])

    def test_advanced_mode_drops_relationships_breaking_the_ontology(self):
        llm = FakeStructuredModel(result={
            "summary": "The butler did it.",
            "entities": [
                {"id": "butler", "name": "The butler", "type": "Suspect"},
                {"id": "knife", "name": "Knife", "type": "Weapon"},
            ],
            "relationships": [
                {"source": "butler", "target": "knife", "type": "used"},
                {"source": "knife", "target": "butler", "type": "used"},
                {"source": "butler", "target": "knife", "type": "owns"},
            ],
        })
        result = ExtractionEngine(llm=llm).extract(
            LONG_TEXT, mode="advanced", ontology=crime_ontology()
        )

        self.assertEqual(len(result.relationships), 1)
        self.assertEqual((result.relationships[0].source, result.relationships[0].target), ("butler", "knife"))


if __name__ == '__main__':
    unittest.main()
