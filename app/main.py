from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.db import engine, Base
from app.models import story, user  # noqa: F401  (register tables)
from app.utils.config import CORS_ORIGINS
from app.utils.logging_config import setup_logging
from app.routes.story import router as story_router
from app.routes.stories import router as stories_router

setup_logging()

app = FastAPI(title="Story Notes API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/health")
async def health():
    return {"status": "ok"}

app.include_router(story_router)
app.include_router(stories_router)

@app.on_event("startup")
async def on_startup():
    # Create tables (dev-only); use Alembic migrations elsewhere
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
