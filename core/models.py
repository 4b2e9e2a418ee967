# /core/models.py

from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# This file holds all the shared Pydantic data structures.
# Models exchanged with clients serialize with camelCase aliases.

ExtractionMode = Literal["easy", "advanced"]
ArticleType = Literal["general", "investment", "revenue-analysis", "mystery-investigation"]
Sentiment = Literal["positive", "negative", "neutral"]
Importance = Literal["high", "medium", "low"]
Strength = Literal["strong", "medium", "weak"]

DEFAULT_ENTITY_COLOR = "#64748b"
MENTIONS = "MENTIONS"
ARTICLE_NODE_TYPE = "Article"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Extraction ---

class Entity(CamelModel):
    id: str = Field(description="Kebab-case identifier, unique within one article.")
    name: str
    type: str = Field(description="Entity type. Must belong to the article's effective ontology.")
    description: Optional[str] = None
    sentiment: Optional[Sentiment] = None
    importance: Optional[Importance] = None


class Relationship(CamelModel):
    source: str = Field(alias="from", description="ID of the source entity.")
    target: str = Field(alias="to", description="ID of the target entity.")
    type: str
    description: Optional[str] = None
    strength: Optional[Strength] = None


class ExtractionResult(BaseModel):
    summary: str = ""
    entities: List[Entity] = Field(default_factory=list)
    relationships: List[Relationship] = Field(default_factory=list)


# --- Ontologies ---

class EntityDefinition(CamelModel):
    type: str = Field(min_length=1)
    description: str = Field(min_length=1)
    examples: List[str] = Field(default_factory=list)
    color: str = DEFAULT_ENTITY_COLOR


class RelationshipDefinition(CamelModel):
    type: str = Field(min_length=1)
    description: str = Field(min_length=1)
    from_type: Optional[str] = None
    to_type: Optional[str] = None


class Ontology(CamelModel):
    id: str
    name: str
    description: str = ""
    entities: List[EntityDefinition]
    relationships: List[RelationshipDefinition] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def entity_types(self) -> List[str]:
        return [definition.type for definition in self.entities]


# --- Articles ---

class ArticleInput(CamelModel):
    title: Optional[str] = None
    content: str
    article_type: ArticleType = "general"
    mode: ExtractionMode = "easy"
    ontology_id: Optional[str] = None


class Article(CamelModel):
    id: str
    title: str
    content: str
    summary: str = ""
    article_type: str = "general"
    mode: ExtractionMode = "easy"
    ontology_id: Optional[str] = None


class ArticleDetail(Article):
    ontology_name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ArticleSummary(CamelModel):
    id: str
    title: Optional[str] = None
    created_at: Optional[str] = None


class IngestResult(CamelModel):
    article_id: str
    entities_count: int
    relationships_count: int


# --- Graph view ---

class GraphNode(CamelModel):
    id: str
    name: str
    type: str
    description: Optional[str] = None
    sentiment: Optional[str] = None
    importance: Optional[str] = None
    color: str = DEFAULT_ENTITY_COLOR


class GraphEdge(CamelModel):
    source: str = Field(alias="from")
    target: str = Field(alias="to")
    type: str
    description: Optional[str] = None
    strength: Optional[str] = None


class KeyInsight(CamelModel):
    text: str
    description: Optional[str] = None
    node_ids: List[str]
    edge_id: str


class GraphView(CamelModel):
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)
    key_insights: List[KeyInsight] = Field(default_factory=list)
    article_type: str = "general"

    @property
    def entity_nodes(self) -> List[GraphNode]:
        return [node for node in self.nodes if node.type != ARTICLE_NODE_TYPE]

    @property
    def relationship_edges(self) -> List[GraphEdge]:
        return [edge for edge in self.edges if edge.type != MENTIONS]


# --- Query / narration ---

class QueryAnswer(CamelModel):
    answer: str
    highlight_node_ids: List[str] = Field(default_factory=list)


class StoryChapter(CamelModel):
    chapter: int
    title: str
    narrative: str
    entity_names: List[str] = Field(default_factory=list)
    entity_ids: List[str] = Field(default_factory=list)
    duration: int = 5000
