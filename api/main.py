import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core import dgraph, settings
from core.log import configure_logging
from records import repository as records_repository
from records import router as records_router
from records import service as records_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Open the Dgraph client once per process.
    client = await dgraph.init_client(settings.dgraph_url(), timeout_s=settings.dgraph_timeout_s())
    try:
        if settings.apply_schema_on_startup():
            await records_repository.ensure_schema(client)
        yield
    finally:
        await dgraph.close_client()


configure_logging(settings.log_level())

app = FastAPI(lifespan=lifespan)

# Allow local frontend dev server to call this API from the browser.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(records_router, tags=["records"])


@app.get("/health")
async def health(client: dgraph.DgraphClient = Depends(dgraph.get_client)) -> dict:
    return await records_service.store_health(client)


@app.get("/")
def root() -> dict:
    return {"message": "timetable-graph api"}


if __name__ == "__main__":
    import uvicorn

    port = settings.api_port()
    logger.info("Starting api service on port %s .......", port)
    uvicorn.run(app, host="0.0.0.0", port=port)
