from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from testharness.services.run_engine import RunEngine

router = APIRouter(prefix="/tests", tags=["tests"])


class RunDocumentRequest(BaseModel):
    document: str
    wait: bool = False


def _engine(request: Request) -> RunEngine:
    return request.app.state.run_engine


@router.get("/documents")
async def list_documents(request: Request) -> dict:
    return {"documents": _engine(request).list_documents()}


@router.post("/run")
async def run_document(data: RunDocumentRequest, request: Request) -> dict:
    engine = _engine(request)
    try:
        if data.wait:
            report = await engine.run(data.document)
            return {"status": engine.status(), "report": report.model_dump(mode="json")}
        return await engine.start_run(data.document)
    except (RuntimeError, FileNotFoundError) as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/status")
async def run_status(request: Request) -> dict:
    return _engine(request).status()


@router.get("/logs")
async def list_run_logs(request: Request) -> dict:
    return {"logs": _engine(request).list_logs()}


@router.get("/logs/{run_id}")
async def get_run_log(run_id: str, request: Request) -> dict:
    try:
        log = _engine(request).load_log(run_id)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return log
