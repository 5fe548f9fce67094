from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from bithab.config import load_settings
from bithab.controller import Intent, InteractionController
from bithab.db import create_document_store
from bithab.errors import SessionNotOpen
from bithab.logger import get_logger, setup_logging
from bithab.projector import project_view
from bithab.session import SessionRegistry
from bithab.sync import SyncEngine

settings = load_settings()
setup_logging(settings.log_level, settings.logs_dir)
logger = get_logger("bithab.api")


def build_registry() -> SessionRegistry:
    documents = create_document_store(settings)
    sync = SyncEngine(documents, persist_ui_cursor=settings.persist_ui_cursor)
    return SessionRegistry(sync, notice_ttl=settings.notice_ttl)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "registry", None) is None:
        app.state.registry = build_registry()
    yield
    # flush pending saves before the process goes away
    await app.state.registry.close_all()


app = FastAPI(title="BitHab API", lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:8501", "http://127.0.0.1:8501"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------------------
# MODELS
# -------------------------------
class UserIDModel(BaseModel):
    user_id: str


class IntentModel(BaseModel):
    user_id: str
    kind: str
    payload: dict = Field(default_factory=dict)


def view_of(session) -> dict:
    return project_view(session).model_dump()


# -------------------------------
# SESSION ROUTES
# -------------------------------
@app.post("/session/open")
async def open_session(user: UserIDModel, request: Request):
    try:
        session = await request.app.state.registry.open(user.user_id)
        return {"success": True, "view": view_of(session)}
    except Exception as e:
        logger.exception(f"Failed to open session for {user.user_id}")
        return {"success": False, "error": str(e)}


@app.post("/session/close")
async def close_session(user: UserIDModel, request: Request):
    try:
        closed = await request.app.state.registry.close(user.user_id)
        return {"success": True, "closed": closed}
    except Exception as e:
        logger.exception(f"Failed to close session for {user.user_id}")
        return {"success": False, "error": str(e)}


# -------------------------------
# VIEW & INTENT ROUTES
# -------------------------------
@app.post("/view")
async def current_view(user: UserIDModel, request: Request):
    try:
        session = request.app.state.registry.get(user.user_id)
        return {"success": True, "view": view_of(session)}
    except SessionNotOpen as e:
        return {"success": False, "error": str(e)}
    except Exception as e:
        logger.exception(f"Failed to build view for {user.user_id}")
        return {"success": False, "error": str(e)}


@app.post("/intent")
async def handle_intent(body: IntentModel, request: Request):
    registry = request.app.state.registry
    try:
        session = registry.get(body.user_id)
    except SessionNotOpen as e:
        return {"success": False, "error": str(e)}

    try:
        controller = InteractionController(session)
        result = await controller.dispatch(Intent(kind=body.kind, payload=body.payload))
        if result.get("signed_out"):
            await registry.close(body.user_id)
            return result
        result["view"] = view_of(session)
        return result
    except Exception as e:
        logger.exception(f"Intent {body.kind} failed for {body.user_id}")
        return {"success": False, "error": str(e)}


@app.get("/")
def root():
    return {"message": "BitHab API is running", "status": "healthy"}

# Health check endpoint
@app.get("/health")
def health_check():
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}

# For running with uvicorn directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
