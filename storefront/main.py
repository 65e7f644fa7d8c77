from contextlib import asynccontextmanager
from fastapi import FastAPI
from storefront.models.database import init_db
from storefront.config import settings
from fastapi.middleware.cors import CORSMiddleware
from storefront.api.router import router
from storefront.logger import get_logger, set_level
from storefront.services.assistant_client import AssistantClient
from storefront.services.conversations import ConversationRegistry

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup: create tables, open the assistant client
    set_level(settings.LOG_LEVEL)
    await init_db(settings.SQLITE_DB_PATH)
    client = AssistantClient(
        settings.RAG_TEXT_ENDPOINT,
        settings.RAG_VOICE_ENDPOINT,
        timeout=settings.ASSISTANT_HTTP_TIMEOUT,
    )
    app.state.conversations = ConversationRegistry(
        client,
        settings.SQLITE_DB_PATH,
        capture_ceiling=settings.CAPTURE_CEILING_SECONDS,
        context_turns=settings.CONVERSATION_CONTEXT_TURNS,
        min_audio_bytes=settings.MIN_AUDIO_BYTES,
    )
    logger.info("storefront ready, db=%s", settings.SQLITE_DB_PATH)
    yield
    # shutdown: release widgets and the HTTP client
    app.state.conversations.close_all()
    await client.close()

app = FastAPI(
    title="Storefront",
    description="Catalog, session cart, checkout and product assistant API for the web storefront.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}


def serve():
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    serve()
