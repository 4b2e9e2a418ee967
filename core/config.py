from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    """
    Centralized application settings. Pydantic's BaseSettings will automatically
    load these from environment variables or a .env file.
    """
    # --- LLM Models ---
    GENERATION_MODEL: str = Field("gemini-2.5-flash", description="The model used for extraction and story generation.")
    FAST_MODEL: str = Field("gemini-2.5-flash", description="The model for fast tasks like question answering.")
    EXTRACTION_TEMPERATURE: float = Field(0.3, description="Sampling temperature for entity extraction.")
    QUERY_TEMPERATURE: float = Field(0.3, description="Sampling temperature for graph question answering.")
    STORY_TEMPERATURE: float = Field(0.7, description="Sampling temperature for story generation.")
    LLM_TIMEOUT_SECONDS: float = Field(60.0, description="Request-level timeout applied to every model call.")
    LLM_MAX_RETRIES: int = Field(0, description="Retries on failed model calls. Zero means a failure is fatal to the request.")

    # --- Google API Key ---
    GOOGLE_API_KEY: str = Field("", description="API key for the Gemini models. Falls back to the environment when empty.")

    # --- Neo4j Database Credentials ---
    NEO4J_URI: str = Field("bolt://localhost:7687", description="Bolt URI of the Neo4j server.")
    NEO4J_USERNAME: str = Field("neo4j", description="Neo4j user.")
    NEO4J_PASSWORD: str = Field("", description="Neo4j password.")
    NEO4J_DATABASE: str = Field("neo4j", description="Name of the Neo4j database holding the article graphs.")

    # --- Text-to-speech ---
    OPENAI_API_KEY: str = Field("", description="API key for the OpenAI speech endpoint.")
    TTS_MODEL: str = Field("tts-1", description="Speech model. tts-1 streams faster than tts-1-hd.")
    TTS_VOICE: str = Field("nova", description="Default narration voice.")
    TTS_FORMAT: str = Field("mp3", description="Default audio container.")

    # --- System Parameters ---
    ENTITY_SIMILARITY_THRESHOLD: float = Field(92.0, description="Fuzzy name score (0-100) above which two entities of the same type are merged.")
    EXTRACTION_MIN_CHARS: int = Field(200, description="Input length from which an extraction with zero entities is treated as a failure.")
    CORS_ORIGINS: List[str] = Field(["http://localhost", "http://localhost:3000"], description="Origins allowed to call the API.")
    LOG_LEVEL: str = Field("INFO", description="Root level for the JSON loggers.")

    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

settings = Settings()
