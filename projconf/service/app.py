"""FastAPI application entrypoint for projconf service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..catalog import CatalogError
from ..collector import CollectionError
from ..config import ConfigError
from ..provision import ClassificationRun, Provisioner


class ClassifyRequest(BaseModel):
    path: str
    catalog: Optional[str] = None


class ClassifyResponse(BaseModel):
    primary: str
    secondary: List[str]
    scores: Dict[str, int]
    detected_languages: List[str]
    detected_cloud_providers: List[str]
    ci_detected: bool
    python_version: Optional[str] = None
    groups: List[str]
    assets: List[str]


class HealthResponse(BaseModel):
    status: str


def _default_provisioner() -> Provisioner:
    return Provisioner()


def create_app(
    provisioner_factory: Callable[[], Provisioner] = _default_provisioner,
) -> FastAPI:
    """Create the FastAPI application exposing project classification."""

    app = FastAPI(title="projconf", version="1.0.0")

    async def get_provisioner() -> Provisioner:
        # The catalog is re-read on every request, so edits apply without a restart.
        return provisioner_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/classify", response_model=ClassifyResponse)
    async def classify(
        payload: ClassifyRequest,
        provisioner: Provisioner = Depends(get_provisioner),
    ) -> ClassifyResponse:
        catalog_path = Path(payload.catalog) if payload.catalog else None

        def _run_classify() -> ClassificationRun:
            return provisioner.classify(payload.path, catalog_path=catalog_path)

        loop = asyncio.get_running_loop()
        run = await loop.run_in_executor(None, _run_classify)
        data = run.result.to_dict()
        return ClassifyResponse(
            **data,
            groups=list(run.groups),
            assets=sorted(run.assets),
        )

    @app.exception_handler(CollectionError)
    async def collection_error_handler(
        _: Any, exc: CollectionError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc), "path": str(exc.path)})

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(_: Any, exc: CatalogError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": f"Invalid catalog: {exc}"})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": f"Invalid configuration: {exc}"})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)
