from __future__ import annotations

import secrets
from contextlib import asynccontextmanager
from dataclasses import asdict
from threading import Lock
from typing import Sequence

from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from bsr import db
from bsr.api_models import BucketStatus, HealthResponse, RunOut, TableInfo, load_desired_state
from bsr.cluster_ops import ClusterError
from bsr.errors import SchemaError, SchemaMismatchError
from bsr.indexes import build_index_name
from bsr.schema_manager import SchemaManager
from bsr.settings import settings


security = HTTPBasic()


def get_current_username(credentials: HTTPBasicCredentials = Depends(security)) -> str:
    expected = settings.api_password
    if expected is None or not (
        secrets.compare_digest(credentials.username, settings.api_user)
        and secrets.compare_digest(credentials.password, expected)
    ):
        raise HTTPException(status_code=401, detail="Invalid credentials", headers={"WWW-Authenticate": "Basic"})
    return credentials.username


def _error_response(e: SchemaError | ClusterError) -> HTTPException:
    code = status.HTTP_409_CONFLICT if isinstance(e, SchemaMismatchError) else status.HTTP_502_BAD_GATEWAY
    bucket = e.bucket if isinstance(e, SchemaError) else None
    return HTTPException(status_code=code, detail={"error": type(e).__name__, "bucket": bucket, "message": str(e)})


def create_app(manager: SchemaManager | None = None, tables: Sequence[TableInfo] | None = None) -> FastAPI:
    """Build the API. ``manager`` and ``tables`` default to ones derived from settings."""

    # One pass at a time per manager; the manager itself does no locking.
    reconcile_lock = Lock()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        mgr = manager or SchemaManager(settings)
        desired = list(tables) if tables is not None else load_desired_state(settings.tables_path).tables
        app.state.manager = mgr
        app.state.tables = desired

        mgr.initialize()
        try:
            if settings.reconcile_on_startup:
                with reconcile_lock:
                    mgr.reconcile(desired)
            yield
        finally:
            mgr.teardown()

    app = FastAPI(title="Bucket Schema Reconciler", lifespan=lifespan)
    app.state.reconcile_lock = reconcile_lock

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        mgr: SchemaManager = app.state.manager
        return HealthResponse(state=mgr.state, mode=mgr.mode.value, tables=len(app.state.tables))

    @app.get("/buckets", response_model=list[BucketStatus])
    def buckets() -> list[BucketStatus]:
        mgr: SchemaManager = app.state.manager
        return [
            BucketStatus(name=t.name, exists=mgr.bucket_exists(t.name), index_name=build_index_name(t.name))
            for t in app.state.tables
        ]

    @app.post("/reconcile", response_model=RunOut)
    def reconcile(username: str = Depends(get_current_username)) -> RunOut:
        mgr: SchemaManager = app.state.manager
        if not reconcile_lock.acquire(blocking=False):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A reconciliation pass is already running.")
        try:
            db.log_event("INFO", f"Reconciliation requested by {username}")
            run = mgr.reconcile(app.state.tables)
        except (SchemaError, ClusterError) as e:
            raise _error_response(e)
        finally:
            reconcile_lock.release()
        return RunOut(**asdict(run))

    @app.get("/events")
    def events(limit: int = Query(100, ge=1, le=1000), bucket: str | None = None) -> list[dict]:
        return db.latest_events(limit=limit, bucket=bucket)

    @app.get("/runs", response_model=list[RunOut])
    def runs(limit: int = Query(20, ge=1, le=500)) -> list[RunOut]:
        return [RunOut(**asdict(r)) for r in db.list_runs(limit=limit)]

    return app


app = create_app()
