"""FastAPI application setup for Crimewatch."""

from fastapi import FastAPI

from .api import router as api_router

app = FastAPI(title="Crimewatch")


@app.get("/health")
def health():
    """Liveness check; does not touch police.uk."""
    return {"status": "ok"}


# API routes
app.include_router(api_router, prefix="/v1")
