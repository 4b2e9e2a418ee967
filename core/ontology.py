# /core/ontology.py

import uuid
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from core.database import GraphDBInterface
from core.errors import ValidationError
from core.logger import get_logger
from core.models import CamelModel, EntityDefinition, Ontology, RelationshipDefinition

logger = get_logger(__name__)


class OntologyDefinition(CamelModel):
    """The user-supplied part of an ontology, validated before anything is written."""
    name: str
    description: Optional[str] = ""
    entities: List[EntityDefinition] = Field(min_length=1)
    relationships: List[RelationshipDefinition] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Ontology name is required")
        return value.strip()

    @model_validator(mode="after")
    def types_are_unique(self):
        entity_types = [d.type for d in self.entities]
        if len(entity_types) != len(set(entity_types)):
            raise ValueError("Entity types must be unique within an ontology")
        relationship_types = [d.type for d in self.relationships]
        if len(relationship_types) != len(set(relationship_types)):
            raise ValueError("Relationship types must be unique within an ontology")
        return self


def parse_definition(definition: Any) -> OntologyDefinition:
    if isinstance(definition, OntologyDefinition):
        return definition
    try:
        return OntologyDefinition.model_validate(definition)
    except PydanticValidationError as e:
        details = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in e.errors()
        ]
        raise ValidationError("Invalid ontology data", details=details) from e


class OntologyRegistry:
    """Create, read, fully replace and delete user-defined ontologies."""

    def __init__(self, db_client: GraphDBInterface):
        self.db_client = db_client

    def create(self, definition: Any) -> str:
        parsed = parse_definition(definition)
        ontology_id = f"ontology-{uuid.uuid4().hex[:12]}"
        self.db_client.create_ontology(self._build(ontology_id, parsed))
        logger.info("Ontology created", extra={"ontology_id": ontology_id, "entity_types": len(parsed.entities)})
        return ontology_id

    def get(self, ontology_id: str) -> Ontology:
        return self.db_client.get_ontology(ontology_id)

    def list(self) -> List[Ontology]:
        return self.db_client.list_ontologies()

    def update(self, ontology_id: str, definition: Any) -> None:
        """
        Full replace: every previous definition is deleted and the new set written in
        one transaction. Raises NotFoundError when the ontology does not exist.
        """
        parsed = parse_definition(definition)
        self.db_client.replace_ontology(self._build(ontology_id, parsed))
        logger.info("Ontology replaced", extra={"ontology_id": ontology_id})

    def delete(self, ontology_id: str) -> None:
        self.db_client.delete_ontology(ontology_id)
        logger.info("Ontology deleted", extra={"ontology_id": ontology_id})

    @staticmethod
    def _build(ontology_id: str, parsed: OntologyDefinition) -> Ontology:
        return Ontology(
            id=ontology_id,
            name=parsed.name,
            description=parsed.description or "",
            entities=parsed.entities,
            relationships=parsed.relationships,
        )

    @staticmethod
    def palette(ontology: Ontology) -> Dict[str, str]:
        return {definition.type: definition.color for definition in ontology.entities}
