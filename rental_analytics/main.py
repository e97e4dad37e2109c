"""
Rental Analytics — FastAPI app factory with a per-app dataset registry.
"""
from __future__ import annotations

from concurrent.futures import ProcessPoolExecutor
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rental_analytics.data.registry import DatasetRegistry
from rental_analytics.data.remote import FileDatasetStore, RemoteDatasetStore
from rental_analytics.api.router_meta import router as meta_router
from rental_analytics.api.router_upload import router as upload_router
from rental_analytics.api.router_comparison import router as comparison_router


def create_app(remote: RemoteDatasetStore | None = None) -> FastAPI:
    """Build the API. `remote` defaults to the file store under RENTAL_DATA_DIR."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from rental_analytics.config import BASE_FOLDER, STORE_FOLDER, REPORTS_FOLDER
        for d in [STORE_FOLDER, REPORTS_FOLDER]:
            d.mkdir(parents=True, exist_ok=True)

        store = remote if remote is not None else FileDatasetStore(STORE_FOLDER)
        app.state.registry = DatasetRegistry(store)
        # one parser process for the app's lifetime, reused by every upload
        ingest_pool = ProcessPoolExecutor(max_workers=1)
        app.state.ingest_executor = ingest_pool

        stored = await app.state.registry.stored_years()
        print(f"  RENTAL_DATA_DIR = {BASE_FOLDER}")
        if stored:
            years = ", ".join(str(y) for y in sorted(stored))
            print(f"\nRental Analytics ready — stored years: {years}\n")
        else:
            print("\nRental Analytics ready — no stored data yet. Upload a spreadsheet to begin.\n")
        yield
        ingest_pool.shutdown(wait=False)

    app = FastAPI(
        title="Rental Analytics API",
        description="Rental transaction ingestion and year-over-year comparison",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(meta_router)
    app.include_router(upload_router)
    app.include_router(comparison_router)

    return app


app = create_app()
