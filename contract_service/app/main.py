import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.core.config import settings
from shared.core.database import contract_engine, Base
from shared.exception_handler import setup_exception_handlers
from shared.models import users, stored_files
from .models import (
    properties, contracts, payments, key_collections, checklists,
    contract_terminations, notifications, platform_settings, reward_transactions
)
from .router import (
    contracts_router,
    payments_router,
    webhook_router,
    key_collections_router,
    checklists_router,
    terminations_router,
    notifications_router,
    platform_settings_router,
    files_router,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

app = FastAPI(title="Contract Service API")

setup_exception_handlers(app)

# Create all tables
Base.metadata.create_all(bind=contract_engine)

origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(contracts_router.router)
app.include_router(payments_router.router)
app.include_router(webhook_router.router)
app.include_router(key_collections_router.router)
app.include_router(checklists_router.router)
app.include_router(terminations_router.router)
app.include_router(notifications_router.router)
app.include_router(platform_settings_router.router)
app.include_router(files_router.router)
