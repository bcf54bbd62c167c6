from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from listing_import.db import Base, engine
import listing_import.models  # noqa: F401 ensure models are imported so tables are known
from listing_import.api.routes import router as api_router
from listing_import.scheduler import start_scheduler, stop_scheduler

app = FastAPI(title="Listing import")

# called from the browser admin UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)
app.include_router(api_router)


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
    start_scheduler()


@app.on_event("shutdown")
def on_shutdown():
    stop_scheduler()
