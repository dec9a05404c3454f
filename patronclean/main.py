from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from patronclean.config import settings
from patronclean.database import init_db
from patronclean.logging_config import configure_logging
from patronclean.routes.validation import pending_router, router as validation_router

configure_logging()

app = FastAPI(title="PatronClean API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup():
    init_db()


@app.get("/")
def root():
    return {"message": "PatronClean API is running", "version": "1.0.0"}


@app.get("/health")
def health():
    return {"status": "healthy"}


app.include_router(validation_router)
app.include_router(pending_router)
