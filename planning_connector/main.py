from __future__ import annotations

import logging
import os

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.
    """

    from planning_connector.config import load_env_files

    load_env_files()

    errors: list[str] = []

    for name in ("PLANNING_API_USERNAME", "PLANNING_API_PASSWORD"):
        if not os.getenv(name, "").strip():
            errors.append(f"{name} is not set. Empty strings are not permitted.")

    for name in ("IMPORT_DEFAULT_COLUMN_SEPARATOR", "IMPORT_DEFAULT_QUOTE_CHAR"):
        raw = os.getenv(name)
        if raw is not None and raw != "" and len(raw.replace("\\t", "\t")) != 1:
            errors.append(f"{name}='{raw}' is not valid. It must be exactly one character.")

    if errors:
        raise RuntimeError(
            "Startup validation failed - missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Planning Model Import Connector",
        version="1.0.0",
    )

    from planning_connector.api.routers import model_import_router

    application.include_router(model_import_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application
