# /api/schemas.py

from typing import List, Optional

from pydantic import Field

from core.models import (
    ArticleSummary,
    CamelModel,
    Ontology,
    StoryChapter,
)

# Request and response bodies of the HTTP surface. Field names go over the wire in camelCase.


class ArticleUpdateRequest(CamelModel):
    title: Optional[str] = None
    content: str


class QueryRequest(CamelModel):
    article_id: str
    question: str


class AudioRequest(CamelModel):
    text: str
    voice: Optional[str] = None
    format: Optional[str] = None


class ArticleCreatedResponse(CamelModel):
    success: bool = True
    article_id: str
    entities_count: int
    relationships_count: int


class ArticleUpdatedResponse(CamelModel):
    success: bool = True
    message: str = "Article updated and graph regenerated"
    entities_count: int
    relationships_count: int


class ArticleListResponse(CamelModel):
    articles: List[ArticleSummary]


class ExampleQuestionsResponse(CamelModel):
    questions: List[str]


class QueryResponse(CamelModel):
    answer: str
    highlight_nodes: List[str] = Field(default_factory=list)


class StoryResponse(CamelModel):
    chapters: List[StoryChapter]


class OntologyListResponse(CamelModel):
    ontologies: List[Ontology]


class OntologyCreatedResponse(CamelModel):
    success: bool = True
    ontology_id: str
    message: str = "Ontology created successfully"


class MessageResponse(CamelModel):
    success: bool = True
    message: str
