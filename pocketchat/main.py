import logging
import sys

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pocketchat import __version__
from pocketchat.api.routes_chat import router as chat_router
from pocketchat.api.routes_conversation import router as conversation_router
from pocketchat.api.routes_prompts import router as prompts_router
from pocketchat.api.routes_providers import router as providers_router
from pocketchat.api.routes_settings import router as settings_router
from pocketchat.kvstore import StorageError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)

app = FastAPI(title="PocketChat Backend", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:8081",     # Expo dev server
        "http://127.0.0.1:8081",
        "http://localhost:19006",    # Expo web
    ],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Local storage is unavailable"})


app.include_router(chat_router)
app.include_router(conversation_router)
app.include_router(prompts_router)
app.include_router(providers_router)
app.include_router(settings_router)


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "version": __version__}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8765)
