"""FastAPI application."""

import logging
import uuid
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from pubmed_assistant import __version__
from pubmed_assistant.config import get_settings
from pubmed_assistant.services.chat import ChatService
from pubmed_assistant.services.conversation_store import InMemoryConversationStore

logger = logging.getLogger(__name__)

app = FastAPI(
    title="PubMed Assistant API",
    description="Conversational PubMed literature search",
    version=__version__,
)


class BadRequest(Exception):
    """Raised when a required request field is missing."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str | None = None
    conversation_id: str | None = Field(default=None, alias="conversationId")


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    conversation_id: str = Field(alias="conversationId")


@lru_cache
def get_chat_service() -> ChatService:
    """Process-wide chat service backed by the in-memory conversation store."""
    settings = get_settings()
    store = InMemoryConversationStore(
        ttl_seconds=settings.conversation_ttl_seconds,
        max_messages=settings.conversation_max_messages,
    )
    return ChatService(store)


@app.exception_handler(BadRequest)
async def bad_request_handler(request: Request, exc: BadRequest) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Error processing %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.post("/chat", response_model=ChatResponse, response_model_by_alias=True)
async def chat(
    body: ChatRequest, service: ChatService = Depends(get_chat_service)
) -> ChatResponse:
    """Run one conversational turn."""
    if not body.message:
        raise BadRequest("Message is required")

    conversation_id = body.conversation_id or str(uuid.uuid4())
    reply = await service.handle(body.message, conversation_id)
    return ChatResponse(message=reply, conversation_id=conversation_id)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}
