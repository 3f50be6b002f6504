import logging
from pathlib import Path
from typing import Optional, Union

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fishing_log import FishingLog
from logbook_api import router as logbook_router
from logbook_config import configure_logging, data_dir as default_data_dir, get_log_file, load_config
from logbook_errors import (
    ConfirmationRequired,
    EntryValidationError,
    ExternalServiceError,
    ImportRejected,
    NothingToImport,
    UnknownRecord,
)

logger = logging.getLogger("fishlog.app")


def create_app(
    data_dir: Optional[Union[str, Path]] = None,
    config_path: Optional[Union[str, Path]] = None,
) -> FastAPI:
    """
    Build the API around one FishingLog.

    data_dir defaults to FISHLOG_DATA_DIR (or ./data); config_path to
    FISHLOG_CONFIG (or ./config/logbook.json).
    """
    cfg = load_config(Path(config_path) if config_path is not None else None)
    configure_logging(cfg.get("log_level"), get_log_file(cfg))

    app = FastAPI(title="Fishing Log")
    app.state.log = FishingLog(data_dir if data_dir is not None else default_data_dir(), cfg)

    # ------------- Domain errors -> HTTP -------------

    @app.exception_handler(EntryValidationError)
    async def entry_validation_handler(request: Request, exc: EntryValidationError):
        return JSONResponse(status_code=400, content={"detail": str(exc), "field": exc.field})

    @app.exception_handler(ImportRejected)
    async def import_rejected_handler(request: Request, exc: ImportRejected):
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    @app.exception_handler(ConfirmationRequired)
    async def confirmation_handler(request: Request, exc: ConfirmationRequired):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(NothingToImport)
    async def nothing_to_import_handler(request: Request, exc: NothingToImport):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(UnknownRecord)
    async def unknown_record_handler(request: Request, exc: UnknownRecord):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ExternalServiceError)
    async def external_service_handler(request: Request, exc: ExternalServiceError):
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    app.include_router(logbook_router)

    logger.info("Fishing log ready; data dir: %s", app.state.log.data_dir)
    return app


app = create_app()
