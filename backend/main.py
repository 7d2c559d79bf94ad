"""
Splitwiser Ledger API

A FastAPI backend that turns expense splits and settlements into per-friend
and per-group balances. This module sets up the app and mounts routers - all
endpoint logic is in routers/ and utils/.
"""

import logging
import os
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import models
from database import engine
from utils.errors import LedgerError

# Import routers
from routers import auth, friends, expenses, settlements, groups, balances, activity


logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Create database tables
models.Base.metadata.create_all(bind=engine)

# Initialize FastAPI app
app = FastAPI(
    title="Splitwiser Ledger API",
    description="API for expense splitting, settlements and friend balances",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    content = {"detail": exc.message}
    if exc.record_id is not None:
        content["record_id"] = exc.record_id
    return JSONResponse(status_code=exc.status_code, content=content)


# Include routers
app.include_router(auth.router)
app.include_router(friends.router)
app.include_router(expenses.router)
app.include_router(settlements.router)
app.include_router(groups.router)
app.include_router(balances.router)
app.include_router(activity.router)
