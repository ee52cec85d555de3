"""
Card Query API - Deterministic Card Portfolio Questions
=======================================================

Thin HTTP adapter over QueryPipeline.

- NO LLM per query: extraction, decomposition and execution are pattern-driven
- NO database access: the caller posts the already-loaded card records
- NO session state: every request is independent

Endpoints:
- POST /query   {message, records} → {results, values, total, structured_query, ...}
- GET  /health

Version: 1.0
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import Optional, List, Dict, Any
import os
from dotenv import load_dotenv
import logging
from contextlib import asynccontextmanager

from query_decomposer import DEFAULT_DATASET
from query_pipeline import PipelineConfig, QueryPipeline

load_dotenv()

APP_VERSION = "1.0"

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# Configuration
def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"Invalid {name}; using {default}")
        return default


MAX_RECORDS_PER_REQUEST = _int_env("MAX_RECORDS_PER_REQUEST", 500)
CORS_ALLOW_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
    if origin.strip()
]

PIPELINE_CONFIG = PipelineConfig.from_env()
pipeline = QueryPipeline(PIPELINE_CONFIG)


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Card Query API v{APP_VERSION}")
    logger.info(f"  amount_min_digits={PIPELINE_CONFIG.amount_min_digits} "
                f"amount_allow_k={PIPELINE_CONFIG.amount_allow_k}")
    logger.info(f"  max_records_per_request={MAX_RECORDS_PER_REQUEST}")
    logger.info(f"  cors_allow_origins={CORS_ALLOW_ORIGINS}")

    yield  # Server is running

    logger.info("Shutting down Card Query API...")


app = FastAPI(
    title="Card Query API",
    description="Deterministic natural-language questions over a card portfolio",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Pydantic Models
class QueryRequest(BaseModel):
    message: str = ""
    records: List[Dict[str, Any]] = []
    dataset: Optional[str] = None


class QueryResponse(BaseModel):
    results: List[Dict[str, Any]]
    values: Optional[List[Dict[str, Any]]] = None
    total: int
    structured_query: Dict[str, Any]
    entities: Optional[Dict[str, Any]] = None
    execution_time: float


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "ok", "version": APP_VERSION}


@app.post("/query", response_model=QueryResponse)
def query(request: QueryRequest):
    """
    Answer one card question over the posted records.

    Runs synchronously in FastAPI's threadpool; the pipeline holds no
    shared mutable state, so concurrent requests need no locking.
    """
    if len(request.records) > MAX_RECORDS_PER_REQUEST:
        raise HTTPException(
            status_code=400,
            detail=f"Too many records: {len(request.records)} > {MAX_RECORDS_PER_REQUEST}",
        )

    outcome = pipeline.handle(request.message, request.records, request.dataset or DEFAULT_DATASET)
    if not outcome.success:
        raise HTTPException(status_code=400, detail=outcome.error)

    result = outcome.result.to_dict()
    return QueryResponse(
        results=result["results"],
        values=result["values"],
        total=result["total"],
        structured_query=outcome.structured_query.to_dict(),
        entities=outcome.entities.to_dict(),
        execution_time=outcome.execution_time,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
