# /api/dependencies.py

from fastapi import Request

from core.database import GraphDBInterface
from core.ontology import OntologyRegistry
from core.query_engine import QueryEngine
from core.speech import SpeechSynthesizer
from core.storyteller import StoryTeller
from ingestion.engine import IngestionEngine

# Services are built once in the application lifespan and shared by every request.


def get_db(request: Request) -> GraphDBInterface:
    return request.app.state.db


def get_ontology_registry(request: Request) -> OntologyRegistry:
    return request.app.state.ontology_registry


def get_ingestion_engine(request: Request) -> IngestionEngine:
    return request.app.state.ingestion_engine


def get_query_engine(request: Request) -> QueryEngine:
    return request.app.state.query_engine


def get_storyteller(request: Request) -> StoryTeller:
    return request.app.state.storyteller


def get_speech(request: Request) -> SpeechSynthesizer:
    return request.app.state.speech
