import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from storyrag.api import deps
from storyrag.api.routers.context import router as context_router
from storyrag.api.routers.records import router as records_router
from storyrag.api.routers.search import router as search_router
from storyrag.api.routers.style import router as style_router
from storyrag.core.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    deps.close_services()


app = FastAPI(title="StoryRAG (retrieval + context assembly)", lifespan=lifespan)

app.include_router(records_router, prefix="/storyrag/records", tags=["records"])
app.include_router(search_router, prefix="/storyrag", tags=["search"])
app.include_router(context_router, prefix="/storyrag", tags=["context"])
app.include_router(style_router, prefix="/storyrag/style-samples", tags=["style"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("storyrag.main:app", host="0.0.0.0", port=8000)
