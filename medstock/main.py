# medstock/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from medstock.core.config import settings
from medstock.api.router import api_router
from medstock.api.exception_handlers import register_exception_handlers

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title=settings.PROJECT_NAME,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_V1_STR)


# Health
@app.get("/")
def root():
    return {"message": "Medstock inventory API running", "version": "v1"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("medstock.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
