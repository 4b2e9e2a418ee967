# /core/storyteller.py

from typing import List, Tuple, Type

from pydantic import BaseModel, Field, create_model
from pydantic import ValidationError as PydanticValidationError
from langchain_core.prompts import ChatPromptTemplate

from core.config import settings
from core.database import GraphDBInterface
from core.errors import StoryGenerationError
from core.llm import get_chat_model
from core.logger import get_logger
from core.models import GraphView, StoryChapter

logger = get_logger(__name__)

DEFAULT_CHAPTER_DURATION_MS = 5000
MAX_PROMPT_RELATIONSHIPS = 20


def chapter_count_range(entity_count: int) -> Tuple[int, int]:
    """Target (min, max) chapter count; grows in steps with the size of the graph."""
    if entity_count <= 5:
        return 2, 3
    if entity_count <= 15:
        return 3, 5
    if entity_count <= 30:
        return 4, 6
    return 5, 8


class ChapterDraft(BaseModel):
    title: str = Field(description="A clear chapter title.")
    narrative: str = Field(description="The story text. Mention the focus entities by their exact names.")
    entity_names: List[str] = Field(default_factory=list, description="Exact names of the entities this chapter focuses on.")
    duration: int = Field(DEFAULT_CHAPTER_DURATION_MS, description="Suggested playback duration in milliseconds.")


def build_story_schema(min_chapters: int, max_chapters: int) -> Type[BaseModel]:
    return create_model(
        "StoryOutline",
        __doc__="A narrated walkthrough of a knowledge graph, split into chapters.",
        chapters=(
            List[ChapterDraft],
            Field(
                min_length=min_chapters,
                max_length=max_chapters,
                description=f"Between {min_chapters} and {max_chapters} story chapters in reading order.",
            ),
        ),
    )


SYSTEM_PROMPT = "You are a data storytelling expert. You create engaging, insightful narratives that guide a reader through a knowledge graph."

HUMAN_PROMPT = """Create an engaging narrative story about this knowledge graph.

Article: {title}
Article Type: {article_type}

Entities ({entity_count}):
{entities}

Relationships ({relationship_count}):
{relationships}

Create a story with {min_chapters}-{max_chapters} chapters that guides the reader through this data. Each chapter should:
1. Have a clear title
2. Focus on specific entities (mention their exact names and list them in entity_names)
3. Tell a cohesive narrative
4. Build upon previous chapters

Focus on the most important entities and relationships."""


class StoryTeller:
    def __init__(self, db_client: GraphDBInterface, llm=None):
        self.db_client = db_client
        self.llm = llm

    def _get_llm(self):
        if self.llm is not None:
            return self.llm
        return get_chat_model(settings.GENERATION_MODEL, settings.STORY_TEMPERATURE)

    def generate_story(self, article_id: str) -> List[StoryChapter]:
        view = self.db_client.get_article_graph(article_id)
        entities = view.entity_nodes
        min_chapters, max_chapters = chapter_count_range(len(entities))

        prompt = ChatPromptTemplate.from_messages([("system", SYSTEM_PROMPT), ("human", HUMAN_PROMPT)])
        schema = build_story_schema(min_chapters, max_chapters)
        chain = prompt | self._get_llm().with_structured_output(schema)

        logger.info(
            "Generating story",
            extra={"article_id": article_id, "entities": len(entities), "chapter_range": [min_chapters, max_chapters]},
        )
        try:
            outline = chain.invoke(self._prompt_inputs(view, min_chapters, max_chapters))
        except Exception as e:
            logger.error("Story generation failed", exc_info=True)
            raise StoryGenerationError(f"Language model call failed: {e}") from e

        if isinstance(outline, dict):
            try:
                outline = schema.model_validate(outline)
            except PydanticValidationError as e:
                logger.error("Story reply failed validation", extra={"article_id": article_id})
                raise StoryGenerationError(f"The language model returned an invalid story: {e}") from e

        drafts = list(getattr(outline, "chapters", None) or [])
        if not drafts:
            raise StoryGenerationError("The language model returned no chapters.")
        if len(drafts) < min_chapters:
            raise StoryGenerationError(
                f"The language model returned {len(drafts)} chapters; at least {min_chapters} are required."
            )
        if len(drafts) > max_chapters:
            logger.warning(
                "Truncating story to the chapter limit",
                extra={"article_id": article_id, "chapters": len(drafts), "max_chapters": max_chapters},
            )
            drafts = drafts[:max_chapters]

        ids_by_name = {node.name.lower(): node.id for node in entities}
        chapters = []
        for number, draft in enumerate(drafts, start=1):
            entity_ids = []
            for name in draft.entity_names:
                entity_id = ids_by_name.get(name.strip().lower())
                if entity_id and entity_id not in entity_ids:
                    entity_ids.append(entity_id)
            chapters.append(StoryChapter(
                chapter=number,
                title=draft.title,
                narrative=draft.narrative,
                entity_names=draft.entity_names,
                entity_ids=entity_ids,
                duration=draft.duration or DEFAULT_CHAPTER_DURATION_MS,
            ))
        return chapters

    @staticmethod
    def _prompt_inputs(view: GraphView, min_chapters: int, max_chapters: int) -> dict:
        entities = view.entity_nodes
        names = {node.id: node.name for node in entities}
        relationships = view.relationship_edges
        title = next((node.name for node in view.nodes if node.type == "Article"), "Untitled Article")
        return {
            "title": title,
            "article_type": view.article_type,
            "entity_count": len(entities),
            "entities": "\n".join(
                f"- {node.name} ({node.type})" + (f": {node.description}" if node.description else "")
                for node in entities
            ),
            "relationship_count": len(relationships),
            "relationships": "\n".join(
                f"- {names.get(edge.source, edge.source)} → {names.get(edge.target, edge.target)} ({edge.type})"
                for edge in relationships[:MAX_PROMPT_RELATIONSHIPS]
            ),
            "min_chapters": min_chapters,
            "max_chapters": max_chapters,
        }
