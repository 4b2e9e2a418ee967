# /core/graph_assembly.py

from typing import Any, Dict, Iterable, List, Optional

from core.article_types import ARTICLE_COLOR, color_for_type
from core.models import (
    ARTICLE_NODE_TYPE,
    MENTIONS,
    GraphEdge,
    GraphNode,
    GraphView,
    KeyInsight,
)

MAX_KEY_INSIGHTS = 8


def humanize_relationship_type(relationship_type: str) -> str:
    return relationship_type.replace("-", " ").replace("_", " ")


def _entity_node(properties: Dict[str, Any], palette: Optional[Dict[str, str]]) -> GraphNode:
    entity_type = properties.get("type") or "Concept"
    return GraphNode(
        id=properties["id"],
        name=properties.get("name") or properties["id"],
        type=entity_type,
        description=properties.get("description"),
        sentiment=properties.get("sentiment"),
        importance=properties.get("importance"),
        color=color_for_type(entity_type, palette),
    )


def assemble(rows: Iterable[Dict[str, Any]], palette: Optional[Dict[str, str]] = None) -> GraphView:
    """
    Converts (article, entity, relationship, target) rows read from the store into the
    node/edge view model: a synthetic Article node, one MENTIONS edge per entity, and
    the entity-to-entity relationship edges. Nodes are deduplicated by id and
    relationship edges by (from, to, type).
    """
    nodes: List[GraphNode] = []
    edges: List[GraphEdge] = []
    node_ids = set()
    edge_keys = set()
    article_type = "general"
    article_id = None

    def add_entity(properties: Dict[str, Any]):
        if properties["id"] in node_ids:
            return
        nodes.append(_entity_node(properties, palette))
        node_ids.add(properties["id"])
        edges.append(GraphEdge(source=article_id, target=properties["id"], type=MENTIONS))

    for row in rows:
        article = row.get("article")
        if article_id is None and article:
            article_id = article["id"]
            article_type = article.get("articleType") or "general"
            nodes.append(GraphNode(
                id=article_id,
                name=article.get("title") or "Untitled Article",
                type=ARTICLE_NODE_TYPE,
                description=article.get("summary"),
                color=ARTICLE_COLOR,
            ))
            node_ids.add(article_id)

        entity = row.get("entity")
        relationship = row.get("relationship")
        target = row.get("target")

        if entity:
            add_entity(entity)
        if entity and relationship and target:
            add_entity(target)
            key = (entity["id"], target["id"], relationship.get("type"))
            if key in edge_keys:
                continue
            edge_keys.add(key)
            edges.append(GraphEdge(
                source=entity["id"],
                target=target["id"],
                type=relationship.get("type") or "related-to",
                description=relationship.get("description"),
                strength=relationship.get("strength"),
            ))

    view = GraphView(nodes=nodes, edges=edges, article_type=article_type)
    view.key_insights = derive_insights(view.nodes, view.edges)
    return view


def derive_insights(nodes: List[GraphNode], edges: List[GraphEdge]) -> List[KeyInsight]:
    """
    Strong relationships if there are any, otherwise every relationship edge; the first
    eight in store order become insights. No re-sorting.
    """
    relationship_edges = [edge for edge in edges if edge.type != MENTIONS]
    strong = [edge for edge in relationship_edges if edge.strength == "strong"]
    selected = strong or relationship_edges

    names = {node.id: node.name for node in nodes}
    insights: List[KeyInsight] = []
    for edge in selected[:MAX_KEY_INSIGHTS]:
        if edge.source not in names or edge.target not in names:
            continue
        insights.append(KeyInsight(
            text=f"{names[edge.source]} → {humanize_relationship_type(edge.type)} → {names[edge.target]}",
            description=edge.description,
            node_ids=[edge.source, edge.target],
            edge_id=f"{edge.source}-{edge.target}",
        ))
    return insights
