# /core/query_engine.py

import re
from typing import List

from pydantic import BaseModel, Field
from langchain_core.prompts import ChatPromptTemplate

from core.config import settings
from core.database import GraphDBInterface
from core.errors import QueryError, ValidationError
from core.llm import get_chat_model
from core.logger import get_logger
from core.models import GraphNode, GraphView, QueryAnswer

logger = get_logger(__name__)

MAX_HEURISTIC_HIGHLIGHTS = 10
HIGHLIGHT_MARKER = re.compile(r"\[HIGHLIGHT:\s*([^\]]*)\]", re.IGNORECASE)

# Question keywords that select every entity of a type when the model gives no ids.
TYPE_KEYWORDS = [
    ("Person", ("people", "person", "persons", "คน")),
    ("Organization", ("organization", "organisation", "องค์กร")),
    ("Location", ("location", "places", "สถานที่")),
]


class GraphAnswer(BaseModel):
    """An answer about the knowledge graph and the entities it refers to."""
    answer: str = Field(description="A concise, specific answer grounded in the graph.")
    highlight_ids: List[str] = Field(
        default_factory=list,
        description="The exact IDs of ALL entities the answer refers to, copied from the 'ID | Name' lines.",
    )


SYSTEM_PROMPT = """You are a helpful assistant that answers questions about a knowledge graph.

When answering:
1. Be concise and specific
2. Reference actual entities and relationships from the graph
3. IMPORTANT: If the answer involves specific entities, list ALL their EXACT IDs (from the "ID | Name" lines) in highlight_ids
   - If asked "Who are the key people?", include ALL person IDs
   - If asked about organizations, include ALL organization IDs
4. If the question cannot be answered from the graph, say so clearly
5. Use the same language as the question (if asked in Thai, answer in Thai)"""


def build_graph_context(view: GraphView) -> str:
    """Textual rendering of an article graph used as model context."""
    entities = view.entity_nodes
    names = {node.id: node.name for node in entities}
    entity_lines = [
        f"- {node.id} | {node.name} ({node.type}): {node.description or 'No description'}"
        for node in entities
    ]
    relationship_lines = []
    for edge in view.relationship_edges:
        line = f"- {names.get(edge.source, edge.source)} → {edge.type} → {names.get(edge.target, edge.target)}"
        if edge.description:
            line += f": {edge.description}"
        relationship_lines.append(line)

    return (
        "Graph Structure:\n\n"
        "Entities (format: ID | Name (Type): Description):\n"
        + "\n".join(entity_lines)
        + "\n\nRelationships:\n"
        + "\n".join(relationship_lines)
    )


def _known(ids: List[str], entities: List[GraphNode]) -> List[str]:
    known = {node.id for node in entities}
    resolved: List[str] = []
    for entity_id in ids:
        entity_id = entity_id.strip()
        if entity_id in known and entity_id not in resolved:
            resolved.append(entity_id)
    return resolved


def parse_highlight_marker(text: str, entities: List[GraphNode]) -> List[str]:
    """Ids listed in a [HIGHLIGHT: id1, id2] marker that exist in the graph."""
    ids: List[str] = []
    for match in HIGHLIGHT_MARKER.finditer(text):
        ids.extend(part for part in match.group(1).split(",") if part.strip())
    return _known(ids, entities)


def heuristic_highlights(question: str, answer: str, entities: List[GraphNode]) -> List[str]:
    """
    Fallback when the model named no ids: a type keyword in the question selects every
    entity of that type, otherwise entities whose name appears in the answer.
    """
    lowered = question.lower()
    for entity_type, keywords in TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            matches = [node.id for node in entities if node.type == entity_type]
            return matches[:MAX_HEURISTIC_HIGHLIGHTS]

    matches = [node.id for node in entities if node.name and node.name in answer]
    return matches[:MAX_HEURISTIC_HIGHLIGHTS]


def strip_highlight_marker(text: str) -> str:
    return HIGHLIGHT_MARKER.sub("", text).strip()


class QueryEngine:
    def __init__(self, db_client: GraphDBInterface, llm=None):
        self.db_client = db_client
        self.llm = llm

    def _get_llm(self):
        if self.llm is not None:
            return self.llm
        return get_chat_model(settings.FAST_MODEL, settings.QUERY_TEMPERATURE)

    def answer_question(self, article_id: str, question: str) -> QueryAnswer:
        if not article_id or not question or not question.strip():
            raise ValidationError("Article ID and question are required")

        view = self.db_client.get_article_graph(article_id)
        entities = view.entity_nodes

        prompt = ChatPromptTemplate.from_messages([
            ("system", SYSTEM_PROMPT),
            ("human", "{context}\n\nQuestion: {question}"),
        ])
        chain = prompt | self._get_llm().with_structured_output(GraphAnswer)
        try:
            reply = chain.invoke({"context": build_graph_context(view), "question": question})
        except Exception as e:
            logger.error("Graph question answering failed", exc_info=True)
            raise QueryError(f"Language model call failed: {e}") from e
        if reply is None:
            raise QueryError("The language model returned no answer.")
        if isinstance(reply, dict):
            reply = GraphAnswer.model_validate(reply)

        raw_answer = reply.answer or ""
        highlight_ids = _known(reply.highlight_ids, entities)
        source = "structured"
        if not highlight_ids:
            highlight_ids = parse_highlight_marker(raw_answer, entities)
            source = "marker"
        if not highlight_ids:
            highlight_ids = heuristic_highlights(question, raw_answer, entities)
            source = "heuristic"

        answer = strip_highlight_marker(raw_answer) or "No answer generated."
        logger.info(
            "Question answered",
            extra={"article_id": article_id, "highlights": len(highlight_ids), "highlight_source": source},
        )
        return QueryAnswer(answer=answer, highlight_node_ids=highlight_ids)

    def example_questions(self, article_id: str, limit: int = 4) -> List[str]:
        """Suggested questions built from the entity types and names present in the graph."""
        view = self.db_client.get_article_graph(article_id)
        return suggest_questions(view, limit)


def suggest_questions(view: GraphView, limit: int = 4) -> List[str]:
    entities = view.entity_nodes
    entity_types = {node.type for node in entities}
    questions: List[str] = []

    if "Organization" in entity_types:
        questions.append("What organizations are mentioned?")
    if "Person" in entity_types:
        questions.append("Who are the key people?")
    if "Location" in entity_types:
        questions.append("Which locations are involved?")
    if len(entities) >= 2:
        questions.append(f"How is {entities[0].name} connected to {entities[1].name}?")

    questions.append("What are the main relationships?")
    questions.append("Show me entities with negative sentiment")
    return questions[:limit]
