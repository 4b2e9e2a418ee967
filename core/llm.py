from typing import Optional

from langchain_google_genai import ChatGoogleGenerativeAI

from core.config import settings

def get_chat_model(model: Optional[str] = None, temperature: float = 0.0) -> ChatGoogleGenerativeAI:
    """
    Builds the chat model used by every service. Calls are bounded by the configured
    timeout and are not retried unless LLM_MAX_RETRIES says otherwise.
    """
    return ChatGoogleGenerativeAI(
        model=model or settings.GENERATION_MODEL,
        temperature=temperature,
        timeout=settings.LLM_TIMEOUT_SECONDS,
        max_retries=settings.LLM_MAX_RETRIES,
        google_api_key=settings.GOOGLE_API_KEY or None,
    )
