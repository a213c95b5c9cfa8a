"""Helpers shared by the collection routers."""
from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from portal.services.entity_service import EntityService, PortalServiceError


def get_entity_service(request: Request) -> EntityService:
    svc = getattr(getattr(request.app, "state", None), "entity_service", None)
    if not svc:
        raise RuntimeError("EntityService not configured")
    return svc


def error_response(err: PortalServiceError) -> JSONResponse:
    return JSONResponse({"ok": False, "error": err.code, "message": err.message}, status_code=err.status_code)


def build_crud_router(kind: str, prefix: str) -> APIRouter:
    """List/create/update/delete endpoints for one collection."""
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/")])

    @router.get("")
    def list_records(request: Request):
        svc = get_entity_service(request)
        return [record.to_dict() for record in svc.list(kind)]

    @router.post("", status_code=201)
    def create_record(payload: dict, request: Request):
        svc = get_entity_service(request)
        try:
            record = svc.create(kind, payload)
        except PortalServiceError as exc:
            return error_response(exc)
        return record.to_dict()

    @router.get("/{entity_id}")
    def get_record(entity_id: str, request: Request):
        svc = get_entity_service(request)
        try:
            record = svc.get(kind, entity_id)
        except PortalServiceError as exc:
            return error_response(exc)
        return record.to_dict()

    @router.put("/{entity_id}")
    def update_record(entity_id: str, payload: dict, request: Request):
        svc = get_entity_service(request)
        try:
            record = svc.update(kind, entity_id, payload)
        except PortalServiceError as exc:
            return error_response(exc)
        return record.to_dict()

    @router.delete("/{entity_id}")
    def delete_record(entity_id: str, request: Request):
        svc = get_entity_service(request)
        try:
            referencing = svc.delete(kind, entity_id)
        except PortalServiceError as exc:
            return error_response(exc)
        return {"ok": True, "id": entity_id, "referencingIssues": referencing}

    return router
