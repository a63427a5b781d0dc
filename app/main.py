from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.errors import register_exception_handlers
from app.logging_config import setup_logging
from app.routes.auth import router as auth_router
from app.routes.upload import router as upload_router
from app.routes.analytics import router as analytics_router

setup_logging()

app = FastAPI(title="Excel Analytics API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/")
def root():
    return {"message": "Excel Analytics API is running", "version": "1.0.0"}


@app.get("/api/health")
def health():
    return {"status": "healthy"}


app.include_router(auth_router)
app.include_router(upload_router)
app.include_router(analytics_router)
