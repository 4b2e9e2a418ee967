# /ingestion/engine.py

import uuid
from typing import Optional, TypedDict

from langgraph.graph import StateGraph, END

from core.database import GraphDBInterface
from core.entity_resolver import EntityResolver
from core.errors import NotFoundError, ValidationError
from core.graph_builder import ExtractionEngine
from core.logger import get_logger
from core.models import Article, ArticleInput, ExtractionResult, IngestResult, Ontology
from core.ontology import OntologyRegistry

logger = get_logger(__name__)

DEFAULT_TITLE = "Untitled Article"


class IngestionState(TypedDict, total=False):
    article: Article
    ontology: Optional[Ontology]
    replace: bool
    extraction: ExtractionResult
    result: IngestResult


class IngestionEngine:
    """
    Article ingestion as a three-step graph: extract -> resolve -> persist.
    Nothing is written until extraction and resolution have both succeeded.
    """

    def __init__(
        self,
        db_client: GraphDBInterface,
        registry: OntologyRegistry,
        extraction_engine: Optional[ExtractionEngine] = None,
        resolver: Optional[EntityResolver] = None,
    ):
        self.db_client = db_client
        self.registry = registry
        self.extraction_engine = extraction_engine or ExtractionEngine()
        self.resolver = resolver or EntityResolver()
        self.workflow = self._build_workflow()

    # --- Graph nodes ---

    def extract(self, state: IngestionState):
        article = state["article"]
        logger.info("--- EXTRACT: Building knowledge graph ---", extra={"article_id": article.id})
        extraction = self.extraction_engine.extract(
            text=article.content,
            title=article.title,
            article_type=article.article_type,
            mode=article.mode,
            ontology=state.get("ontology"),
        )
        return {"extraction": extraction}

    def resolve(self, state: IngestionState):
        logger.info("--- RESOLVE: Merging duplicate entities ---")
        return {"extraction": self.resolver.resolve_and_merge_graph(state["extraction"])}

    def persist(self, state: IngestionState):
        extraction = state["extraction"]
        article = state["article"].model_copy(update={"summary": extraction.summary})
        logger.info("--- PERSIST: Writing article graph ---", extra={"article_id": article.id})
        if state.get("replace"):
            self.db_client.replace_article_graph(article, extraction.entities, extraction.relationships)
        else:
            self.db_client.create_article_graph(
                article, extraction.entities, extraction.relationships, article.ontology_id
            )
        return {
            "result": IngestResult(
                article_id=article.id,
                entities_count=len(extraction.entities),
                relationships_count=len(extraction.relationships),
            )
        }

    def _build_workflow(self):
        workflow = StateGraph(IngestionState)
        workflow.add_node("extract", self.extract)
        workflow.add_node("resolve", self.resolve)
        workflow.add_node("persist", self.persist)

        workflow.set_entry_point("extract")
        workflow.add_edge("extract", "resolve")
        workflow.add_edge("resolve", "persist")
        workflow.add_edge("persist", END)
        return workflow.compile()

    # --- Public operations ---

    def ingest(self, article_input: ArticleInput) -> IngestResult:
        if not article_input.content or not article_input.content.strip():
            raise ValidationError("Article content is required")

        ontology = None
        if article_input.mode == "advanced":
            if not article_input.ontology_id:
                raise ValidationError("Advanced mode requires an ontologyId")
            ontology = self.registry.get(article_input.ontology_id)
        elif article_input.ontology_id:
            raise ValidationError("An ontologyId is only accepted in advanced mode")

        article = Article(
            id=f"article-{uuid.uuid4().hex[:12]}",
            title=(article_input.title or "").strip() or DEFAULT_TITLE,
            content=article_input.content,
            article_type=article_input.article_type,
            mode=article_input.mode,
            ontology_id=article_input.ontology_id,
        )
        final_state = self.workflow.invoke({"article": article, "ontology": ontology, "replace": False})
        return final_state["result"]

    def reextract(self, article_id: str, content: str, title: Optional[str] = None) -> IngestResult:
        """
        Re-runs extraction on new content with the article's stored mode, type and
        ontology, then swaps the graph in one transaction. A failed extraction leaves
        the previous graph as it was.
        """
        if not content or not content.strip():
            raise ValidationError("Article content is required")

        stored = self.db_client.get_article(article_id)
        ontology = None
        if stored.mode == "advanced":
            if not stored.ontology_id:
                raise NotFoundError(f"Article '{article_id}' has no ontology to re-extract with")
            ontology = self.registry.get(stored.ontology_id)

        article = Article(
            id=stored.id,
            title=(title or "").strip() or stored.title,
            content=content,
            article_type=stored.article_type,
            mode=stored.mode,
            ontology_id=stored.ontology_id,
        )
        final_state = self.workflow.invoke({"article": article, "ontology": ontology, "replace": True})
        return final_state["result"]
