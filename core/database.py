# /core/database.py

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from neo4j import GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from core.config import Settings, settings as default_settings
from core.errors import NotFoundError, StorageError
from core.graph_assembly import assemble
from core.logger import get_logger
from core.models import (
    Article,
    ArticleDetail,
    ArticleSummary,
    Entity,
    GraphView,
    Ontology,
    Relationship,
)

logger = get_logger(__name__)


class GraphDBInterface(ABC):
    """
    An abstract base class defining the graph store operations the application relies on.
    """
    @abstractmethod
    def ensure_schema(self):
        pass

    # --- Articles ---

    @abstractmethod
    def create_article_graph(self, article: Article, entities: List[Entity], relationships: List[Relationship], ontology_id: Optional[str] = None):
        pass

    @abstractmethod
    def replace_article_graph(self, article: Article, entities: List[Entity], relationships: List[Relationship]):
        pass

    @abstractmethod
    def delete_article_entities(self, article_id: str):
        pass

    @abstractmethod
    def get_article(self, article_id: str) -> ArticleDetail:
        pass

    @abstractmethod
    def get_article_graph(self, article_id: str, palette: Optional[Dict[str, str]] = None) -> GraphView:
        pass

    @abstractmethod
    def list_articles(self) -> List[ArticleSummary]:
        pass

    # --- Ontologies ---

    @abstractmethod
    def create_ontology(self, ontology: Ontology):
        pass

    @abstractmethod
    def get_ontology(self, ontology_id: str) -> Ontology:
        pass

    @abstractmethod
    def list_ontologies(self) -> List[Ontology]:
        pass

    @abstractmethod
    def replace_ontology(self, ontology: Ontology):
        pass

    @abstractmethod
    def delete_ontology(self, ontology_id: str):
        pass

    @abstractmethod
    def close(self):
        pass


# --- Write transactions ---

def _entity_params(entities: List[Entity]) -> List[Dict[str, Any]]:
    return [
        {
            "id": entity.id,
            "name": entity.name,
            "type": entity.type,
            "description": entity.description,
            "sentiment": entity.sentiment,
            "importance": entity.importance,
            "position": position,
        }
        for position, entity in enumerate(entities)
    ]


def _relationship_params(relationships: List[Relationship]) -> List[Dict[str, Any]]:
    return [
        {
            "source": rel.source,
            "target": rel.target,
            "type": rel.type,
            "description": rel.description,
            "strength": rel.strength,
            "position": position,
        }
        for position, rel in enumerate(relationships)
    ]


def _write_article_tx(tx, article: Article, entities: List[Entity], relationships: List[Relationship], ontology_id: Optional[str]):
    tx.run(
        """
        MERGE (a:Article {id: $id})
        ON CREATE SET a.createdAt = datetime()
        SET a.title = $title,
            a.content = $content,
            a.summary = $summary,
            a.articleType = $articleType,
            a.mode = $mode,
            a.ontologyId = $ontologyId,
            a.updatedAt = datetime()
        """,
        id=article.id,
        title=article.title,
        content=article.content,
        summary=article.summary,
        articleType=article.article_type,
        mode=article.mode,
        ontologyId=ontology_id,
    )

    tx.run(
        """
        MATCH (a:Article {id: $articleId})-[old:USES_ONTOLOGY]->()
        DELETE old
        """,
        articleId=article.id,
    )
    if ontology_id:
        tx.run(
            """
            MATCH (a:Article {id: $articleId})
            MATCH (o:Ontology {id: $ontologyId})
            MERGE (a)-[:USES_ONTOLOGY]->(o)
            """,
            articleId=article.id,
            ontologyId=ontology_id,
        )

    # Each entity is created together with the MENTIONS edge that owns it.
    tx.run(
        """
        MATCH (a:Article {id: $articleId})
        UNWIND $entities AS entity
        CREATE (e:Entity {id: entity.id, articleId: $articleId})
        SET e += entity
        CREATE (a)-[:MENTIONS]->(e)
        """,
        articleId=article.id,
        entities=_entity_params(entities),
    )

    # Endpoints are matched through the article so edges never cross articles.
    tx.run(
        """
        MATCH (a:Article {id: $articleId})
        UNWIND $relationships AS rel
        MATCH (a)-[:MENTIONS]->(source:Entity {id: rel.source})
        MATCH (a)-[:MENTIONS]->(target:Entity {id: rel.target})
        CREATE (source)-[r:RELATES_TO {type: rel.type}]->(target)
        SET r.description = rel.description,
            r.strength = rel.strength,
            r.position = rel.position
        """,
        articleId=article.id,
        relationships=_relationship_params(relationships),
    )


def _delete_entities_tx(tx, article_id: str):
    tx.run(
        """
        MATCH (a:Article {id: $articleId})-[:MENTIONS]->(e:Entity)
        DETACH DELETE e
        """,
        articleId=article_id,
    )


def _replace_article_tx(tx, article: Article, entities: List[Entity], relationships: List[Relationship]):
    record = tx.run("MATCH (a:Article {id: $articleId}) RETURN a.id AS id", articleId=article.id).single()
    if record is None:
        raise NotFoundError(f"Article '{article.id}' not found")
    _delete_entities_tx(tx, article.id)
    _write_article_tx(tx, article, entities, relationships, article.ontology_id)


def _write_definitions_tx(tx, ontology: Ontology):
    tx.run(
        """
        MATCH (o:Ontology {id: $ontologyId})
        UNWIND $definitions AS definition
        CREATE (d:EntityDefinition)
        SET d = definition
        CREATE (o)-[:DEFINES]->(d)
        """,
        ontologyId=ontology.id,
        definitions=[
            {
                "type": d.type,
                "description": d.description,
                "examples": d.examples,
                "color": d.color,
                "position": position,
            }
            for position, d in enumerate(ontology.entities)
        ],
    )
    tx.run(
        """
        MATCH (o:Ontology {id: $ontologyId})
        UNWIND $definitions AS definition
        CREATE (d:RelationshipDefinition)
        SET d = definition
        CREATE (o)-[:DEFINES]->(d)
        """,
        ontologyId=ontology.id,
        definitions=[
            {
                "type": d.type,
                "description": d.description,
                "fromType": d.from_type,
                "toType": d.to_type,
                "position": position,
            }
            for position, d in enumerate(ontology.relationships)
        ],
    )


def _create_ontology_tx(tx, ontology: Ontology):
    tx.run(
        """
        CREATE (o:Ontology {
          id: $id,
          name: $name,
          description: $description,
          createdAt: datetime(),
          updatedAt: datetime()
        })
        """,
        id=ontology.id,
        name=ontology.name,
        description=ontology.description,
    )
    _write_definitions_tx(tx, ontology)


def _replace_ontology_tx(tx, ontology: Ontology):
    record = tx.run(
        """
        MATCH (o:Ontology {id: $id})
        SET o.name = $name,
            o.description = $description,
            o.updatedAt = datetime()
        RETURN o.id AS id
        """,
        id=ontology.id,
        name=ontology.name,
        description=ontology.description,
    ).single()
    if record is None:
        raise NotFoundError(f"Ontology '{ontology.id}' not found")

    tx.run(
        """
        MATCH (o:Ontology {id: $ontologyId})-[:DEFINES]->(d)
        DETACH DELETE d
        """,
        ontologyId=ontology.id,
    )
    _write_definitions_tx(tx, ontology)


def _delete_ontology_tx(tx, ontology_id: str):
    # Articles keep their ontologyId property; only the ontology and its definitions go.
    tx.run(
        """
        MATCH (o:Ontology {id: $ontologyId})
        OPTIONAL MATCH (o)-[:DEFINES]->(d)
        DETACH DELETE d, o
        """,
        ontologyId=ontology_id,
    )


# --- Read transactions ---

ONTOLOGY_RETURN = """
RETURN o {.id, .name, .description,
          createdAt: toString(o.createdAt),
          updatedAt: toString(o.updatedAt)} AS ontology,
       [d IN definitions WHERE d:EntityDefinition | d {.*}] AS entities,
       [d IN definitions WHERE d:RelationshipDefinition | d {.*}] AS relationships
"""


def _ontology_from_record(record: Dict[str, Any]) -> Ontology:
    data = dict(record["ontology"])
    data["description"] = data.get("description") or ""
    data["entities"] = [
        {key: value for key, value in definition.items() if key != "position" and value is not None}
        for definition in record["entities"]
    ]
    data["relationships"] = [
        {key: value for key, value in definition.items() if key != "position"}
        for definition in record["relationships"]
    ]
    return Ontology.model_validate(data)


def _read_ontology_tx(tx, ontology_id: str) -> Optional[Dict[str, Any]]:
    result = tx.run(
        """
        MATCH (o:Ontology {id: $ontologyId})
        OPTIONAL MATCH (o)-[:DEFINES]->(d)
        WITH o, d ORDER BY d.position
        WITH o, collect(d) AS definitions
        """ + ONTOLOGY_RETURN,
        ontologyId=ontology_id,
    )
    return result.single()


def _read_ontologies_tx(tx) -> List[Dict[str, Any]]:
    result = tx.run(
        """
        MATCH (o:Ontology)
        OPTIONAL MATCH (o)-[:DEFINES]->(d)
        WITH o, d ORDER BY d.position
        WITH o, collect(d) AS definitions
        ORDER BY o.createdAt DESC
        """ + ONTOLOGY_RETURN
    )
    return list(result)


def _read_article_graph_tx(tx, article_id: str) -> List[Dict[str, Any]]:
    result = tx.run(
        """
        MATCH (a:Article {id: $articleId})
        OPTIONAL MATCH (a)-[:MENTIONS]->(e:Entity)
        OPTIONAL MATCH (e)-[r:RELATES_TO]->(e2:Entity)<-[:MENTIONS]-(a)
        RETURN a {.id, .title, .summary, .articleType, .mode, .ontologyId} AS article,
               e {.*} AS entity,
               r {.*} AS relationship,
               e2 {.*} AS target
        ORDER BY e.position, r.position
        """,
        articleId=article_id,
    )
    return result.data()


class Neo4jDatabase(GraphDBInterface):
    """Concrete implementation of the GraphDBInterface for Neo4j."""
    def __init__(self, config: Settings = None, driver=None):
        config = config or default_settings
        self._database = config.NEO4J_DATABASE
        if driver is not None:
            self._driver = driver
            return
        if not all([config.NEO4J_URI, config.NEO4J_USERNAME, config.NEO4J_PASSWORD]):
            raise ValueError("Neo4j credentials not found in environment or .env file.")
        self._driver = GraphDatabase.driver(
            config.NEO4J_URI, auth=(config.NEO4J_USERNAME, config.NEO4J_PASSWORD)
        )

    @contextmanager
    def _session(self) -> Iterator[Any]:
        """One session per operation, released on every exit path."""
        try:
            with self._driver.session(database=self._database) as session:
                yield session
        except (Neo4jError, DriverError) as e:
            logger.error("Neo4j operation failed", exc_info=True)
            raise StorageError(f"Graph store operation failed: {e}") from e

    def ensure_schema(self):
        statements = [
            "CREATE CONSTRAINT article_id IF NOT EXISTS FOR (a:Article) REQUIRE a.id IS UNIQUE",
            "CREATE CONSTRAINT ontology_id IF NOT EXISTS FOR (o:Ontology) REQUIRE o.id IS UNIQUE",
            "CREATE INDEX entity_article IF NOT EXISTS FOR (e:Entity) ON (e.articleId)",
        ]
        with self._session() as session:
            for statement in statements:
                session.run(statement).consume()
        logger.info("Neo4j constraints ensured.")

    # --- Articles ---

    def create_article_graph(self, article: Article, entities: List[Entity], relationships: List[Relationship], ontology_id: Optional[str] = None):
        """
        Upserts the Article node by id and creates its entities and relationships.
        Entities are always created fresh: callers on an update path must delete the
        previous ones first (or use replace_article_graph).
        """
        with self._session() as session:
            session.execute_write(
                _write_article_tx, article, entities, relationships, ontology_id or article.ontology_id
            )
        logger.info(
            "Article graph written",
            extra={"article_id": article.id, "entities": len(entities), "relationships": len(relationships)},
        )

    def replace_article_graph(self, article: Article, entities: List[Entity], relationships: List[Relationship]):
        """Swaps an article's graph for a new one inside a single write transaction."""
        with self._session() as session:
            session.execute_write(_replace_article_tx, article, entities, relationships)
        logger.info(
            "Article graph replaced",
            extra={"article_id": article.id, "entities": len(entities), "relationships": len(relationships)},
        )

    def delete_article_entities(self, article_id: str):
        with self._session() as session:
            session.execute_write(_delete_entities_tx, article_id)

    def get_article(self, article_id: str) -> ArticleDetail:
        query = """
        MATCH (a:Article {id: $articleId})
        OPTIONAL MATCH (a)-[:USES_ONTOLOGY]->(o:Ontology)
        RETURN a.id AS id, a.title AS title, a.content AS content, a.summary AS summary,
               a.articleType AS articleType, a.mode AS mode,
               coalesce(o.id, a.ontologyId) AS ontologyId, o.name AS ontologyName,
               toString(a.createdAt) AS createdAt, toString(a.updatedAt) AS updatedAt
        """
        with self._session() as session:
            record = session.execute_read(
                lambda tx: tx.run(query, articleId=article_id).single()
            )
        if record is None:
            raise NotFoundError(f"Article '{article_id}' not found")

        data = dict(record)
        data["title"] = data.get("title") or "Untitled Article"
        data["summary"] = data.get("summary") or ""
        data["articleType"] = data.get("articleType") or "general"
        data["mode"] = data.get("mode") or "easy"
        return ArticleDetail.model_validate(data)

    def get_article_graph_rows(self, article_id: str) -> List[Dict[str, Any]]:
        with self._session() as session:
            rows = session.execute_read(_read_article_graph_tx, article_id)
        if not rows:
            raise NotFoundError(f"Article '{article_id}' not found")
        return rows

    def get_article_graph(self, article_id: str, palette: Optional[Dict[str, str]] = None) -> GraphView:
        return assemble(self.get_article_graph_rows(article_id), palette)

    def list_articles(self) -> List[ArticleSummary]:
        query = """
        MATCH (a:Article)
        RETURN a.id AS id, a.title AS title, toString(a.createdAt) AS createdAt
        ORDER BY a.createdAt DESC
        """
        with self._session() as session:
            records = session.execute_read(lambda tx: tx.run(query).data())
        return [ArticleSummary.model_validate(record) for record in records]

    # --- Ontologies ---

    def create_ontology(self, ontology: Ontology):
        with self._session() as session:
            session.execute_write(_create_ontology_tx, ontology)

    def get_ontology(self, ontology_id: str) -> Ontology:
        with self._session() as session:
            record = session.execute_read(_read_ontology_tx, ontology_id)
        if record is None:
            raise NotFoundError(f"Ontology '{ontology_id}' not found")
        return _ontology_from_record(record)

    def list_ontologies(self) -> List[Ontology]:
        with self._session() as session:
            records = session.execute_read(_read_ontologies_tx)
        return [_ontology_from_record(record) for record in records]

    def replace_ontology(self, ontology: Ontology):
        with self._session() as session:
            session.execute_write(_replace_ontology_tx, ontology)

    def delete_ontology(self, ontology_id: str):
        with self._session() as session:
            session.execute_write(_delete_ontology_tx, ontology_id)

    def close(self):
        self._driver.close()
