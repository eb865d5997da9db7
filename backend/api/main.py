"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.routes import places  # noqa: E402

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create app
app = FastAPI(
    title="Places Gateway API",
    description="Caching gateway in front of third-party place-search providers",
    version="1.0.2",
)

# CORS middleware for map clients
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-API-Key", "X-Google-API-Key"],
    expose_headers=["X-Cache-Hit", "X-Cache-Type"],
    max_age=86400,
)

# Include routers
app.include_router(places.router, tags=["places"])


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Places Gateway API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
