"""Word GPT Plus API bridge — FastAPI application entry point.

Exposes the multi-provider API client to the Word task pane over local
HTTP: text generation, raw completion/embedding calls, model listing and
provider configuration.
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from wordgpt_client.client.api_client import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, ApiClient
from wordgpt_client.client.errors import (
    ApiClientError,
    InvalidResponseShapeError,
    MissingConfigurationError,
    ProviderHttpError,
    QueueTimeoutError,
    RetriesExhaustedError,
    UnknownProviderError,
    UnsupportedOperationError,
)
from wordgpt_client.logging.structured import (
    RequestTimer,
    generate_request_id,
    get_logger,
    request_id_var,
    setup_logging,
)
from wordgpt_client.security.auth import verify_bridge_key

VERSION = "1.0.0"

logger = get_logger("bridge")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging()
    app.state.api_client = await ApiClient.from_settings()
    logger.info("Bridge started")
    yield
    await app.state.api_client.close()
    logger.info("Bridge stopped")


app = FastAPI(
    title="Word GPT Plus API Bridge",
    description="Multi-provider LLM client for the Word task pane",
    version=VERSION,
    lifespan=lifespan,
)


# --- Request bodies ---

class GenerationOptions(BaseModel):
    provider: str | None = None
    model: str | None = None
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    deployment: str | None = None
    timeout: float | None = None


class GenerateRequest(GenerationOptions):
    prompt: str
    use_chat_model: bool = True


class ChatCompletionRequest(GenerationOptions):
    messages: list[dict]


class CompletionRequest(GenerationOptions):
    prompt: str


class EmbeddingRequest(BaseModel):
    input: str | list[str]
    provider: str | None = None
    model: str | None = None
    deployment: str | None = None
    timeout: float | None = None


class ApiKeyUpdate(BaseModel):
    key: str


class EndpointUpdate(BaseModel):
    endpoint: str


class ActiveProviderUpdate(BaseModel):
    provider: str


def get_api_client(request: Request) -> ApiClient:
    return request.app.state.api_client


# --- Error mapping ---

def _status_for(exc: ApiClientError) -> int:
    if isinstance(exc, UnknownProviderError):
        return 404
    if isinstance(exc, (MissingConfigurationError, UnsupportedOperationError)):
        return 400
    if isinstance(exc, ProviderHttpError):
        return exc.status
    if isinstance(exc, InvalidResponseShapeError):
        return 502
    if isinstance(exc, RetriesExhaustedError):
        return 503
    if isinstance(exc, QueueTimeoutError):
        return 504
    return 500


@app.exception_handler(ApiClientError)
async def api_client_error_handler(request: Request, exc: ApiClientError):
    status = _status_for(exc)
    logger.warning(
        "Request failed",
        extra={"audit_data": {
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "status": status,
        }},
    )
    return JSONResponse(
        status_code=status,
        content={"error": {"type": type(exc).__name__, "message": str(exc)}},
    )


# --- Routes ---

@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


@app.post("/v1/generate", dependencies=[Depends(verify_bridge_key)])
async def generate(body: GenerateRequest, client: ApiClient = Depends(get_api_client)):
    """Generate text for a prompt taken from the document selection."""
    rid = generate_request_id()
    request_id_var.set(rid)

    options = body.model_dump(exclude={"prompt", "use_chat_model"})
    with RequestTimer() as timer:
        text = await client.generate_text(body.prompt, use_chat_model=body.use_chat_model, **options)

    logger.info(
        "Text generated",
        extra={"audit_data": {
            "provider": body.provider or client.active_provider,
            "use_chat_model": body.use_chat_model,
            "latency_ms": timer.elapsed_ms,
        }},
    )
    return JSONResponse(content={"text": text}, headers={"X-Request-Id": rid})


@app.post("/v1/chat/completions", dependencies=[Depends(verify_bridge_key)])
async def chat_completions(body: ChatCompletionRequest, client: ApiClient = Depends(get_api_client)):
    return await client.create_chat_completion(body.messages, **body.model_dump(exclude={"messages"}))


@app.post("/v1/completions", dependencies=[Depends(verify_bridge_key)])
async def completions(body: CompletionRequest, client: ApiClient = Depends(get_api_client)):
    return await client.create_completion(body.prompt, **body.model_dump(exclude={"prompt"}))


@app.post("/v1/embeddings", dependencies=[Depends(verify_bridge_key)])
async def embeddings(body: EmbeddingRequest, client: ApiClient = Depends(get_api_client)):
    return await client.create_embedding(body.input, **body.model_dump(exclude={"input"}))


@app.get("/v1/models", dependencies=[Depends(verify_bridge_key)])
async def models(provider: str | None = None, client: ApiClient = Depends(get_api_client)):
    return {"data": await client.get_available_models(provider)}


@app.get("/v1/providers", dependencies=[Depends(verify_bridge_key)])
async def providers(client: ApiClient = Depends(get_api_client)):
    return {"active_provider": client.active_provider, "providers": client.provider_status()}


@app.put("/v1/providers/active", dependencies=[Depends(verify_bridge_key)])
async def set_active_provider(body: ActiveProviderUpdate, client: ApiClient = Depends(get_api_client)):
    await client.set_active_provider(body.provider)
    return {"active_provider": client.active_provider}


@app.put("/v1/providers/{provider}/key", dependencies=[Depends(verify_bridge_key)])
async def set_api_key(provider: str, body: ApiKeyUpdate, client: ApiClient = Depends(get_api_client)):
    await client.set_api_key(provider, body.key)
    return {"provider": provider, "configured": client.is_configured(provider)}


@app.put("/v1/providers/{provider}/endpoint", dependencies=[Depends(verify_bridge_key)])
async def set_custom_endpoint(provider: str, body: EndpointUpdate, client: ApiClient = Depends(get_api_client)):
    await client.set_custom_endpoint(provider, body.endpoint)
    return {"provider": provider, "configured": client.is_configured(provider)}
