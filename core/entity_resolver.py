import re
import unicodedata
from typing import Dict, Iterable, List, Optional

from rapidfuzz import fuzz

from core.config import settings
from core.logger import get_logger
from core.models import Entity, ExtractionResult, Relationship

logger = get_logger(__name__)

# --- Constants ---
ENGLISH_HONORIFICS = {
    "mr", "mrs", "ms", "miss", "mx", "dr", "prof", "professor", "sir", "dame",
    "madam", "lord", "lady", "rev", "fr", "sr", "st", "capt", "gen", "col",
}
# Longest first so that "นางสาว" wins over "นาง".
THAI_HONORIFICS = ("นางสาว", "น้อง", "คุณ", "พี่", "นาย", "นาง")
# Types whose names may carry a Thai honorific written without a space ("คุณสมชาย").
PERSON_TYPES = ("Person", "Investor")

DIGITS = re.compile(r"\d+")


def normalize_name(name: str) -> str:
    """
    Canonical comparison key for an entity name: case-folded, leading honorifics
    removed, Latin diacritics and punctuation stripped, whitespace collapsed.
    Thai vowel and tone marks are kept. A Thai honorific is only removed when a
    space follows it, so words such as "คุณภาพ" keep their first syllable.
    """
    text = unicodedata.normalize("NFKC", name).casefold().strip()

    for prefix in THAI_HONORIFICS:
        if text.startswith(prefix) and len(text) > len(prefix) and text[len(prefix)].isspace():
            text = text[len(prefix):].lstrip()
            break

    tokens = text.split()
    while len(tokens) > 1 and tokens[0].rstrip(".") in ENGLISH_HONORIFICS:
        tokens.pop(0)
    text = " ".join(tokens)

    chars: List[str] = []
    for char in unicodedata.normalize("NFKD", text):
        if unicodedata.combining(char) and chars and ord(chars[-1]) < 0x250:
            continue
        category = unicodedata.category(char)
        chars.append(" " if category[0] in ("P", "S") else char)
    text = unicodedata.normalize("NFC", "".join(chars))

    return re.sub(r"\s+", " ", text).strip()


def strip_attached_honorific(key: str) -> Optional[str]:
    """The key without a leading Thai honorific written directly against the name."""
    for prefix in THAI_HONORIFICS:
        if key.startswith(prefix) and len(key) > len(prefix):
            return key[len(prefix):]
    return None


def tokens_contained(key: str, other: str) -> bool:
    """True when every token of the shorter key appears in the longer one."""
    shorter, longer = sorted((key.split(), other.split()), key=len)
    return set(shorter) <= set(longer)


class EntityResolver:
    def __init__(self, similarity_threshold: Optional[float] = None, person_types: Iterable[str] = PERSON_TYPES):
        self.similarity_threshold = (
            settings.ENTITY_SIMILARITY_THRESHOLD if similarity_threshold is None else similarity_threshold
        )
        self.person_types = set(person_types)

    def is_fuzzy_match(self, key: str, candidate_key: str) -> bool:
        """
        Near-identical names only merge when they carry the same numbers and one
        name's tokens are all contained in the other's.
        """
        if not key or not candidate_key:
            return False
        if DIGITS.findall(key) != DIGITS.findall(candidate_key):
            return False
        if not tokens_contained(key, candidate_key):
            return False
        return fuzz.ratio(key, candidate_key) >= self.similarity_threshold

    def find_canonical(self, entity: Entity, key: str, kept: List[Entity], keys: Dict[str, str]) -> Optional[Entity]:
        for candidate in kept:
            if candidate.type != entity.type:
                continue
            candidate_key = keys[candidate.id]
            if key == candidate_key:
                return candidate
            if entity.type in self.person_types and (
                strip_attached_honorific(key) == candidate_key
                or strip_attached_honorific(candidate_key) == key
            ):
                return candidate
            if self.is_fuzzy_match(key, candidate_key):
                return candidate
        return None

    def resolve_and_merge_graph(self, graph: ExtractionResult) -> ExtractionResult:
        """
        Collapses entities that refer to the same real-world referent and rewires
        relationships onto the surviving entity.

        Args:
            graph: The validated extraction to be deduplicated.

        Returns:
            A new, deduplicated ExtractionResult.
        """
        id_map: Dict[str, str] = {}  # Maps duplicate IDs to their canonical IDs
        keys: Dict[str, str] = {}
        nodes_to_keep: List[Entity] = []

        for original in graph.entities:
            if original.id in keys or original.id in id_map:
                continue
            entity = original.model_copy()
            key = normalize_name(entity.name)
            canonical = self.find_canonical(entity, key, nodes_to_keep, keys)

            if canonical is not None:
                logger.info(
                    "Merging duplicate entity",
                    extra={"duplicate": entity.id, "canonical": canonical.id},
                )
                id_map[entity.id] = canonical.id
                for attribute in ("description", "sentiment", "importance"):
                    if getattr(canonical, attribute) is None and getattr(entity, attribute) is not None:
                        setattr(canonical, attribute, getattr(entity, attribute))
            else:
                nodes_to_keep.append(entity)
                keys[entity.id] = key

        edges: List[Relationship] = []
        seen_edges = set()
        for original in graph.relationships:
            edge = original.model_copy()
            edge.source = id_map.get(edge.source, edge.source)
            edge.target = id_map.get(edge.target, edge.target)
            # Remove self-referencing loops that may have been created by the merge
            if edge.source == edge.target:
                continue
            signature = (edge.source, edge.target, edge.type)
            if signature in seen_edges:
                continue
            seen_edges.add(signature)
            edges.append(edge)

        if id_map:
            logger.info("Entity resolution complete", extra={"merged": len(id_map)})
        return ExtractionResult(summary=graph.summary, entities=nodes_to_keep, relationships=edges)
