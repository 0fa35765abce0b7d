"""FastAPI application exposing the creator discovery view."""
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from creator_discovery.api.v1.router import api_router
from creator_discovery.config import settings
from creator_discovery.dependencies import init_backend, init_controller, init_location_classifier


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_backend()
    init_controller()
    init_location_classifier()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "version": settings.VERSION}


if __name__ == "__main__":
    uvicorn.run("creator_discovery.main:app", host="0.0.0.0", port=settings.PORT, reload=settings.DEBUG)
