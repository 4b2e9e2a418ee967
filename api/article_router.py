# /api/article_router.py

from typing import Dict, Optional

from fastapi import APIRouter, Depends

from api.dependencies import (
    get_db,
    get_ingestion_engine,
    get_ontology_registry,
    get_query_engine,
    get_speech,
    get_storyteller,
)
from api.schemas import (
    ArticleCreatedResponse,
    ArticleListResponse,
    ArticleUpdatedResponse,
    ArticleUpdateRequest,
    AudioRequest,
    ExampleQuestionsResponse,
    QueryRequest,
    QueryResponse,
    StoryResponse,
)
from api.streaming_logic import stream_story_audio
from core.database import GraphDBInterface
from core.errors import NotFoundError
from core.logger import get_logger
from core.models import ArticleDetail, ArticleInput, GraphView
from core.ontology import OntologyRegistry
from core.query_engine import QueryEngine
from core.speech import SpeechSynthesizer
from core.storyteller import StoryTeller
from ingestion.engine import IngestionEngine

logger = get_logger(__name__)

router = APIRouter(
    prefix="/articles",
    tags=["Articles"]
)


def _palette_for(article: ArticleDetail, registry: OntologyRegistry) -> Optional[Dict[str, str]]:
    """Ontology colours for advanced-mode articles; the built-in palette otherwise."""
    if article.mode != "advanced" or not article.ontology_id:
        return None
    try:
        return registry.palette(registry.get(article.ontology_id))
    except NotFoundError:
        logger.warning("Article references a deleted ontology", extra={"article_id": article.id, "ontology_id": article.ontology_id})
        return None


@router.post("", response_model=ArticleCreatedResponse)
def create_article(request: ArticleInput, engine: IngestionEngine = Depends(get_ingestion_engine)):
    """Extracts a knowledge graph from the submitted article and stores it."""
    result = engine.ingest(request)
    return ArticleCreatedResponse(
        article_id=result.article_id,
        entities_count=result.entities_count,
        relationships_count=result.relationships_count,
    )


@router.get("", response_model=ArticleListResponse)
def list_articles(db: GraphDBInterface = Depends(get_db)):
    return ArticleListResponse(articles=db.list_articles())


@router.post("/query", response_model=QueryResponse)
def query_article(request: QueryRequest, query_engine: QueryEngine = Depends(get_query_engine)):
    """Answers a question about one article's graph and names the entities to highlight."""
    result = query_engine.answer_question(request.article_id, request.question)
    return QueryResponse(answer=result.answer, highlight_nodes=result.highlight_node_ids)


@router.get("/{article_id}", response_model=ArticleDetail)
def get_article(article_id: str, db: GraphDBInterface = Depends(get_db)):
    return db.get_article(article_id)


@router.patch("/{article_id}", response_model=ArticleUpdatedResponse)
def update_article(
    article_id: str,
    request: ArticleUpdateRequest,
    engine: IngestionEngine = Depends(get_ingestion_engine),
):
    """Re-extracts the article from new content and replaces its graph."""
    result = engine.reextract(article_id, request.content, title=request.title)
    return ArticleUpdatedResponse(
        entities_count=result.entities_count,
        relationships_count=result.relationships_count,
    )


@router.get("/{article_id}/graph", response_model=GraphView)
def get_article_graph(
    article_id: str,
    db: GraphDBInterface = Depends(get_db),
    registry: OntologyRegistry = Depends(get_ontology_registry),
):
    article = db.get_article(article_id)
    return db.get_article_graph(article_id, palette=_palette_for(article, registry))


@router.get("/{article_id}/examples", response_model=ExampleQuestionsResponse)
def get_example_questions(article_id: str, query_engine: QueryEngine = Depends(get_query_engine)):
    return ExampleQuestionsResponse(questions=query_engine.example_questions(article_id))


@router.get("/{article_id}/story", response_model=StoryResponse)
def get_story(article_id: str, storyteller: StoryTeller = Depends(get_storyteller)):
    return StoryResponse(chapters=storyteller.generate_story(article_id))


@router.post("/{article_id}/story/audio")
def get_story_audio(
    article_id: str,
    request: AudioRequest,
    speech: SpeechSynthesizer = Depends(get_speech),
):
    """Streams spoken narration for one chapter of the article's story."""
    logger.info("Narrating story chapter", extra={"article_id": article_id, "characters": len(request.text)})
    return stream_story_audio(speech, request.text, voice=request.voice, audio_format=request.format)
