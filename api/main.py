from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.article_router import router as article_router
from api.ontology_router import router as ontology_router
from core.config import settings
from core.database import Neo4jDatabase
from core.errors import StoryGraphError
from core.logger import get_logger
from core.ontology import OntologyRegistry
from core.query_engine import QueryEngine
from core.speech import SpeechSynthesizer
from core.storyteller import StoryTeller
from ingestion.engine import IngestionEngine

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """One Neo4j driver per process, shared by every request and closed on shutdown."""
    db = Neo4jDatabase()
    db.ensure_schema()
    registry = OntologyRegistry(db)
    app.state.db = db
    app.state.ontology_registry = registry
    app.state.ingestion_engine = IngestionEngine(db, registry)
    app.state.query_engine = QueryEngine(db)
    app.state.storyteller = StoryTeller(db)
    app.state.speech = SpeechSynthesizer()
    logger.info("StoryGraph API started")
    try:
        yield
    finally:
        db.close()
        logger.info("StoryGraph API stopped")


app = FastAPI(
    title="StoryGraph API",
    description="Turns articles into typed knowledge graphs you can explore, question and narrate.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StoryGraphError)
async def storygraph_error_handler(request: Request, exc: StoryGraphError):
    if exc.status_code >= 500:
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "error_type": type(exc).__name__, "error": str(exc)},
        )
        message = exc.public_message
    else:
        message = str(exc)
    content = {"error": message}
    if exc.details is not None:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in error["loc"] if part != "body"), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


# --- Include all the Routers ---
app.include_router(article_router)
app.include_router(ontology_router)


@app.get("/")
def read_root():
    return {"message": "StoryGraph API is running."}
