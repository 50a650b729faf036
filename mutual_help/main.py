from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mutual_help.config import get_settings
from mutual_help.crud import UserCRUD
from mutual_help.db import close_engine, create_schema, get_db
from mutual_help.exceptions import CleanupError, StorageError
from mutual_help.logging_config import get_logger, setup_logging
from mutual_help.routers import ads, geography, hearts, images, tags, users

LOGGER = get_logger(__name__)

settings = get_settings()

# -------------------- LIFESPAN (startup/shutdown) + BOOTSTRAP ADMIN --------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level, settings.log_json)

    if settings.create_schema_on_startup:
        await create_schema()

    if settings.bootstrap_admin_email and settings.bootstrap_admin_password:
        # bcrypt refuses passwords longer than 72 bytes
        if len(settings.bootstrap_admin_password.encode("utf-8")) > 72:
            raise RuntimeError(
                "BOOTSTRAP_ADMIN_PASSWORD is longer than 72 bytes (bcrypt limit). "
                "Use a shorter password (<= 72 bytes)."
            )

        # get_db is a dependency generator, closed explicitly so the session does not leak
        db_gen = get_db()
        db = await anext(db_gen)
        try:
            existing = await UserCRUD(db).get_by_email(settings.bootstrap_admin_email)
            if not existing:
                await UserCRUD(db).create(
                    firstname="Admin",
                    lastname="Admin",
                    email=settings.bootstrap_admin_email.strip().lower(),
                    password=settings.bootstrap_admin_password,
                    user_type="admin",
                )
                LOGGER.info("Bootstrap admin %s created", settings.bootstrap_admin_email)
        finally:
            await db_gen.aclose()

    yield

    await close_engine()


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    LOGGER.error("Object storage error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Object storage error"})


@app.exception_handler(CleanupError)
async def cleanup_error_handler(request: Request, exc: CleanupError):
    return JSONResponse(status_code=500, content={"detail": f"Error with the deletion: {exc}"})


app.include_router(users.router)
app.include_router(ads.router)
app.include_router(geography.countries_router)
app.include_router(geography.departments_router)
app.include_router(geography.cities_router)
app.include_router(tags.demands_router)
app.include_router(tags.offers_router)
app.include_router(tags.categories_router)
app.include_router(hearts.hearts_router)
app.include_router(hearts.contacts_router)
app.include_router(images.router)
