# stashdb/main.py
import os
from typing import List

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .apps.audit.router import router as audit_router
from .apps.catalog.router import router as catalog_router
from .apps.inventory.router import router as inventory_router
from .apps.purchasing.router import router as purchasing_router
from .apps.reporting.router import router as reporting_router


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env (comma-separated).

    Falls back to the local frontend dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ]


app = FastAPI(title="Stash Inventory API", version="1.0.0")
cors_origins = _allowed_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials="*" not in cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # malformed or missing fields are validation failures like any other: 400
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(catalog_router)
app.include_router(purchasing_router)
app.include_router(audit_router)
app.include_router(inventory_router)
app.include_router(reporting_router)
