# services/recipes/main.py
import logging
import os
import sys
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv

# Load environment variables before shared modules read them
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from exceptions import GenerationError
from routes import generation_error_handler, router

from shared.database import close_db, init_db
from shared.middleware import add_middleware_to_app


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await init_db()
    logger.info("Recipes service started successfully")
    yield
    # Shutdown
    logger.info("Shutting down recipes service...")
    await close_db()


app = FastAPI(
    title="Cuisine AI Recipes Service",
    version="1.0.0",
    description="Credit-gated AI recipe generation",
    lifespan=lifespan,
)

add_middleware_to_app(
    app,
    service_name="recipes",
    max_request_size=1024 * 1024,
    endpoint_limits={"/generate-recipes": 64 * 1024},
)

# CORS is added last so it wraps everything, including error responses
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("ALLOWED_ORIGINS", "*").split(","),
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "recipes", "version": "1.0.0"}


app.add_exception_handler(GenerationError, generation_error_handler)
app.include_router(router, tags=["recipes"])

if __name__ == "__main__":
    port = int(os.getenv("PORT", 8004))
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        reload=os.getenv("ENVIRONMENT", "development") == "development",
    )
