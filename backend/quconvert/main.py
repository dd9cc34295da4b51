"""
Question Bank Converter - FastAPI Main Application

Exposes the TA → SW expression conversion over HTTP:
- POST /api/convert - Convert the algorithm of one exercise
- POST /api/convert/definition - Convert one Maple expression
- POST /api/convert/statement - Convert one TA expression
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from quconvert import __version__
from quconvert.core.config import settings
from quconvert.core.errors import TranspilerError
from quconvert.services.pipeline import (
    ConversionPipeline, convert_definition, convert_statement,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    logger.info("Starting Question Bank Converter API...")
    logger.info(f"Native wrapper: {settings.native_function}")
    logger.info(f"Max delegation depth: {settings.max_delegation_depth}")
    yield
    logger.info("Shutting down Question Bank Converter API...")


app = FastAPI(
    title="Question Bank Converter API",
    description="Convert TA question bank algorithms to the SW dialect",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:4200",
        "http://127.0.0.1:4200",
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# API Models
class AlgorithmRequest(BaseModel):
    """Algorithm of one exercise"""
    algorithm: str = Field(..., description="Semicolon separated TA statements")


class DefinitionRequest(BaseModel):
    """Single Maple expression"""
    definition: str = Field(..., description="Maple expression, e.g. seq(i^2, i=1..5)")


class StatementRequest(BaseModel):
    """Single TA expression"""
    expression: str = Field(..., description="TA expression, e.g. rint(2,10)")


def _error_response(error: TranspilerError) -> HTTPException:
    logger.error(f"Conversion rejected: {error}")
    return HTTPException(status_code=400, detail=error.to_dict())


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "Question Bank Converter API",
        "version": __version__
    }


@app.get("/api/health")
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "native_function": settings.native_function,
        "presentation_function": settings.presentation_function,
        "max_delegation_depth": settings.max_delegation_depth,
    }


@app.post("/api/convert")
async def convert(request: AlgorithmRequest) -> Dict[str, Any]:
    """
    Convert the algorithm of one exercise.

    Returns every converted variable, the replacement scheme and an issue
    summary.
    """
    pipeline = ConversionPipeline(settings)
    try:
        conversion = pipeline.convert(request.algorithm)
    except TranspilerError as e:
        raise _error_response(e)

    response = conversion.to_dict()
    response["summary"] = pipeline.errors.summary()
    return response


@app.post("/api/convert/definition")
async def convert_maple_definition(request: DefinitionRequest) -> Dict[str, Any]:
    """Convert one Maple expression through the call tree."""
    result = convert_definition(request.definition)
    return {
        "definition": result.definition,
        "warning": result.warning,
        "issues": [issue.to_dict() for issue in result.issues],
    }


@app.post("/api/convert/statement")
async def convert_ta_statement(request: StatementRequest) -> Dict[str, Any]:
    """Convert one TA expression."""
    try:
        result = convert_statement(request.expression, settings)
    except TranspilerError as e:
        raise _error_response(e)
    return result.to_dict()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "quconvert.main:app",
        host=settings.api_host,
        port=settings.api_port,
    )
