from fastapi import APIRouter

from deepcite.api.v1 import documents, scrape

api_router = APIRouter(prefix="/v1")

api_router.include_router(scrape.router, prefix="/scrape", tags=["Scrape"])
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
