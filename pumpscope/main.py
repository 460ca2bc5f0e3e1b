from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import chat, functions, health, pump_data
from .config import settings
from .logging_config import setup_logging

setup_logging()

# Create FastAPI app
app = FastAPI(
    title="Pumpscope API",
    description="Conversational pump.fun analytics backend",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(chat.router, tags=["Chat"])
app.include_router(functions.router, tags=["Functions"])
app.include_router(pump_data.router, tags=["Pump Data"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "Pumpscope API",
        "version": "0.1.0",
        "description": "Conversational pump.fun analytics backend",
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pumpscope.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
