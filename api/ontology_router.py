# /api/ontology_router.py

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from api.dependencies import get_ontology_registry
from api.schemas import MessageResponse, OntologyCreatedResponse, OntologyListResponse
from core.models import Ontology
from core.ontology import OntologyRegistry

# --- Router Initialization ---
router = APIRouter(
    prefix="/ontologies",
    tags=["Ontology Management"]
)

# Bodies arrive as plain JSON objects; the registry validates them and reports
# every offending field in one ValidationError.


@router.post("", response_model=OntologyCreatedResponse)
def create_ontology(
    definition: Dict[str, Any] = Body(...),
    registry: OntologyRegistry = Depends(get_ontology_registry),
):
    """Creates a user-defined ontology of entity and relationship types."""
    return OntologyCreatedResponse(ontology_id=registry.create(definition))


@router.get("", response_model=OntologyListResponse)
def list_ontologies(registry: OntologyRegistry = Depends(get_ontology_registry)):
    return OntologyListResponse(ontologies=registry.list())


@router.get("/{ontology_id}", response_model=Ontology)
def get_ontology(ontology_id: str, registry: OntologyRegistry = Depends(get_ontology_registry)):
    return registry.get(ontology_id)


@router.patch("/{ontology_id}", response_model=MessageResponse)
def update_ontology(
    ontology_id: str,
    definition: Dict[str, Any] = Body(...),
    registry: OntologyRegistry = Depends(get_ontology_registry),
):
    """Replaces the ontology's name, description and every definition in one step."""
    registry.update(ontology_id, definition)
    return MessageResponse(message="Ontology updated successfully")


@router.delete("/{ontology_id}", response_model=MessageResponse)
def delete_ontology(ontology_id: str, registry: OntologyRegistry = Depends(get_ontology_registry)):
    registry.delete(ontology_id)
    return MessageResponse(message="Ontology deleted successfully")
