# /core/graph_builder.py

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple, Type

from pydantic import BaseModel, Field, create_model
from pydantic import ValidationError as PydanticValidationError
from langchain_core.prompts import ChatPromptTemplate

from core.article_types import (
    DEDUPLICATION_RULES,
    SAME_LANGUAGE_RULE,
    SCHEMA_RULE,
    get_article_type_config,
)
from core.config import settings
from core.errors import ExtractionError, ValidationError
from core.llm import get_chat_model
from core.logger import get_logger
from core.models import (
    Entity,
    ExtractionMode,
    ExtractionResult,
    Importance,
    Ontology,
    Relationship,
    Sentiment,
    Strength,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class TypeConstraint:
    """The closed set of types a single extraction request is allowed to produce."""
    entity_types: Tuple[str, ...]
    instructions: str
    relationship_types: Tuple[str, ...] = ()
    # relationship type -> (fromType, toType); None means any entity type
    endpoint_rules: Dict[str, Tuple[Optional[str], Optional[str]]] = field(default_factory=dict)


def build_ontology_prompt(ontology: Ontology) -> str:
    """Writes the system instructions for an advanced-mode extraction from the ontology definitions."""
    lines = [
        f'You are an expert knowledge engineer extracting a knowledge graph with the "{ontology.name}" ontology.',
    ]
    if ontology.description:
        lines.append(f"Ontology scope: {ontology.description}")
    lines += [
        "",
        SAME_LANGUAGE_RULE,
        "",
        "Extract:",
        "1. **Entities** - Use ONLY these entity types (enforced by schema):",
    ]
    for definition in ontology.entities:
        line = f"   - **{definition.type}**: {definition.description}"
        if definition.examples:
            line += f" (examples: {', '.join(definition.examples)})"
        lines.append(line)
    lines += ["", f"   {SCHEMA_RULE}", ""]

    if ontology.relationships:
        lines.append("2. **Relationships** - Use ONLY these relationship types (enforced by schema):")
        for definition in ontology.relationships:
            source = definition.from_type or "any entity"
            target = definition.to_type or "any entity"
            lines.append(f'   - "{definition.type}" ({source} → {target}): {definition.description}')
    else:
        lines.append('2. **Relationships** - Use specific kebab-case action verbs such as "works-at" or "owns".')
    lines += [
        "   - Include relationship strength (strong/medium/weak)",
        "",
        "3. **Metadata**:",
        "   - Entity sentiment: positive, negative, neutral",
        "   - Entity importance: high (key players), medium (supporting), low (minor mentions)",
        "",
        "Rules:",
        "- Extract ALL entities of the allowed types mentioned in the article",
        DEDUPLICATION_RULES,
        "- Only connect entities whose types match the relationship definition",
    ]
    return "\n".join(lines)


def resolve_type_constraint(
    mode: ExtractionMode,
    article_type: Optional[str] = None,
    ontology: Optional[Ontology] = None,
) -> TypeConstraint:
    """
    Easy mode uses the curated enumeration of the article type. Advanced mode uses the
    entity and relationship types of the referenced ontology.
    """
    if mode == "advanced":
        if ontology is None:
            raise ValidationError("Advanced extraction requires an ontology.")
        if not ontology.entities:
            raise ValidationError(f"Ontology '{ontology.id}' defines no entity types.")
        return TypeConstraint(
            entity_types=tuple(ontology.entity_types),
            instructions=build_ontology_prompt(ontology),
            relationship_types=tuple(d.type for d in ontology.relationships),
            endpoint_rules={d.type: (d.from_type, d.to_type) for d in ontology.relationships},
        )

    config = get_article_type_config(article_type)
    return TypeConstraint(entity_types=config.entity_types, instructions=config.system_prompt)


def build_extraction_schema(constraint: TypeConstraint) -> Type[BaseModel]:
    """
    Creates the structured-output schema for one request. Entity types (and relationship
    types, when the ontology defines them) are closed Literal enumerations, so the model
    provider rejects any type outside the active set.
    """
    entity_type = Literal[constraint.entity_types]
    relationship_type = Literal[constraint.relationship_types] if constraint.relationship_types else str

    entity_model = create_model(
        "ExtractedEntity",
        id=(str, Field(description="Unique kebab-case identifier, e.g. 'mark-zuckerberg'. Reuse it for every mention of the same entity.")),
        name=(str, Field(description="The entity name as written in the article.")),
        type=(entity_type, Field(description="One of the allowed entity types.")),
        description=(Optional[str], Field(None, description="What this entity is and its role in the story.")),
        sentiment=(Optional[Sentiment], Field(None, description="positive, negative or neutral.")),
        importance=(Optional[Importance], Field(None, description="high, medium or low.")),
    )
    relationship_model = create_model(
        "ExtractedRelationship",
        source=(str, Field(description="The id of the source entity.")),
        target=(str, Field(description="The id of the target entity.")),
        type=(relationship_type, Field(description="Specific kebab-case action verb, e.g. 'works-at'.")),
        description=(Optional[str], Field(None, description="Context explaining the relationship.")),
        strength=(Optional[Strength], Field(None, description="strong, medium or weak.")),
    )
    return create_model(
        "KnowledgeGraphExtraction",
        __doc__="Entities, relationships and a summary extracted from one article.",
        summary=(str, Field(description="Concise summary highlighting key facts and impact.")),
        entities=(List[entity_model], Field(default_factory=list)),
        relationships=(List[relationship_model], Field(default_factory=list)),
    )


def get_graph_extraction_chain(llm, constraint: TypeConstraint, schema: Type[BaseModel]):
    prompt = ChatPromptTemplate.from_messages([
        ("system", "{instructions}\n\n--- ALLOWED ENTITY TYPES ---\n{entity_types}\n---"),
        ("human", "Article Title: {title}\nArticle Text:\n---\n{text}\n---"),
    ])
    formatted_prompt = prompt.partial(
        instructions=constraint.instructions,
        entity_types=", ".join(constraint.entity_types),
    )
    return formatted_prompt | llm.with_structured_output(schema)


class ExtractionEngine:
    """Turns article text into a validated set of entities, relationships and a summary."""

    def __init__(self, llm=None):
        self.llm = llm

    def _get_llm(self):
        if self.llm is not None:
            return self.llm
        return get_chat_model(settings.GENERATION_MODEL, settings.EXTRACTION_TEMPERATURE)

    def extract(
        self,
        text: str,
        title: Optional[str] = None,
        article_type: Optional[str] = "general",
        mode: ExtractionMode = "easy",
        ontology: Optional[Ontology] = None,
    ) -> ExtractionResult:
        if not text or not text.strip():
            raise ValidationError("Article content is required")

        constraint = resolve_type_constraint(mode, article_type, ontology)
        schema = build_extraction_schema(constraint)
        chain = get_graph_extraction_chain(self._get_llm(), constraint, schema)

        logger.info(
            "Extracting knowledge graph",
            extra={"mode": mode, "article_type": article_type, "allowed_types": list(constraint.entity_types)},
        )
        try:
            raw = chain.invoke({"title": title or "Untitled", "text": text})
        except Exception as e:
            logger.error("Extraction call failed", exc_info=True)
            raise ExtractionError(f"Language model call failed: {e}") from e

        result = self._validate(self._to_payload(raw), constraint, text)
        logger.info(
            "Extraction complete",
            extra={"entities": len(result.entities), "relationships": len(result.relationships)},
        )
        return result

    @staticmethod
    def _to_payload(raw: Any) -> Dict[str, Any]:
        if isinstance(raw, BaseModel):
            return raw.model_dump()
        if isinstance(raw, dict):
            return raw
        raise ExtractionError("The language model returned no parsable content.")

    def _validate(self, payload: Dict[str, Any], constraint: TypeConstraint, text: str) -> ExtractionResult:
        allowed = set(constraint.entity_types)
        entities: List[Entity] = []
        for item in payload.get("entities") or []:
            try:
                entity = Entity.model_validate(item)
            except PydanticValidationError:
                logger.warning("Dropping malformed entity", extra={"entity": str(item)[:200]})
                continue
            if entity.type not in allowed:
                # Rejected, never coerced into a neighbouring type.
                logger.warning(
                    "Rejecting entity outside the allowed types",
                    extra={"entity_id": entity.id, "entity_type": entity.type},
                )
                continue
            if any(existing.id == entity.id for existing in entities):
                continue
            entities.append(entity)

        if not entities and len(text.strip()) >= settings.EXTRACTION_MIN_CHARS:
            raise ExtractionError("The language model returned no entities for a non-trivial article.")

        types_by_id = {entity.id: entity.type for entity in entities}
        relationships: List[Relationship] = []
        for item in payload.get("relationships") or []:
            try:
                relationship = Relationship.model_validate(item)
            except PydanticValidationError:
                logger.warning("Dropping malformed relationship", extra={"relationship": str(item)[:200]})
                continue
            if relationship.source not in types_by_id or relationship.target not in types_by_id:
                continue
            if constraint.relationship_types and not self._respects_definition(relationship, types_by_id, constraint):
                continue
            relationships.append(relationship)

        summary = payload.get("summary") or ""
        return ExtractionResult(summary=summary.strip(), entities=entities, relationships=relationships)

    @staticmethod
    def _respects_definition(relationship: Relationship, types_by_id: Dict[str, str], constraint: TypeConstraint) -> bool:
        rule = constraint.endpoint_rules.get(relationship.type)
        if rule is None:
            logger.warning("Rejecting undefined relationship type", extra={"relationship_type": relationship.type})
            return False
        from_type, to_type = rule
        if from_type and types_by_id[relationship.source] != from_type:
            return False
        if to_type and types_by_id[relationship.target] != to_type:
            return False
        return True
