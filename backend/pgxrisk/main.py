from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pgxrisk.api.router import api_router
from pgxrisk.core import logging  # noqa: F401  Initialize logging

app = FastAPI(
    title="pgxrisk API",
    description="Pharmacogenomic risk classification from VCF variants and medication lists",
    version="1.0.0"
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API Routers
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "pgxrisk"}


def run() -> None:
    """Serve the API with uvicorn (host/port from PGXRISK_HOST / PGXRISK_PORT)."""
    import os
    import uvicorn

    uvicorn.run(
        "pgxrisk.main:app",
        host=os.environ.get("PGXRISK_HOST", "127.0.0.1"),
        port=int(os.environ.get("PGXRISK_PORT", "8000")),
    )


if __name__ == "__main__":
    run()
