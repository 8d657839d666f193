from fastapi import APIRouter
from pgxrisk.api.routes import analysis, pharmacogenomics

api_router = APIRouter()

api_router.include_router(analysis.router, tags=["Analysis"])
api_router.include_router(pharmacogenomics.router, tags=["Pharmacogenomics"])
