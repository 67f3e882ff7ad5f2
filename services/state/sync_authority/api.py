"""HTTP adapter routes for Sync Authority Service."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from packages.petcare_shared.envelope import Envelope, EnvelopeKind, EnvelopeMeta, new_meta
from packages.petcare_shared.errors import ErrorDetail, codes, policy_error, validation_error
from packages.petcare_shared.http import (
    HttpServerError,
    MissingHeaderError,
    error_body,
    get_header,
    read_json_body,
    status_code_for_errors,
)
from packages.petcare_shared.ids import is_uuid
from services.state.sync_authority import codes as reasons
from services.state.sync_authority.domain import (
    ChangeRecord,
    ChangeType,
    OpRejection,
    PullPage,
    PushResult,
)
from services.state.sync_authority.service import SyncAuthorityService

OWNER_HEADER = "X-Owner-Id"
PET_ENTITY_TYPE = "pet"
PET_PULL_LIMIT = 500
_SOURCE = "sync_http"
_PET_CHANGE_TYPES: dict[str, str] = {
    "pet.upsert": ChangeType.UPSERT.value,
    "pet.delete": ChangeType.DELETE.value,
}

OwnerResolver = Callable[[Request], str]


def owner_from_header(request: Request) -> str:
    """Read the authenticated owner id forwarded by the upstream auth layer."""
    value = get_header(request, OWNER_HEADER)
    assert value is not None
    return value


def register_routes(
    *,
    router: APIRouter,
    service: SyncAuthorityService,
    owner_resolver: OwnerResolver | None = None,
) -> None:
    """Register sync push/pull routes on one shared router."""
    resolve_owner = owner_resolver or owner_from_header

    @router.post("/api/sync/push")
    async def push(request: Request) -> JSONResponse:
        try:
            owner_id = resolve_owner(request)
            body = await read_json_body(request)
        except HttpServerError as exc:
            return _http_error_response(exc)
        if not isinstance(body, Mapping):
            return _error_response(
                [validation_error("request body must be a JSON object")]
            )

        result = await run_in_threadpool(
            service.push,
            meta=_meta(owner_id),
            owner_id=owner_id,
            device_id=_optional_text(body.get("device_id")),
            ops=_as_ops(body.get("ops")),
        )
        if not result.ok or result.value is None:
            return _error_response(result.errors)
        return JSONResponse(_push_body(result.value))

    @router.get("/api/sync/pull")
    async def pull(request: Request) -> JSONResponse:
        try:
            owner_id = resolve_owner(request)
        except HttpServerError as exc:
            return _http_error_response(exc)

        params, errors = _pull_params(request)
        if errors:
            return _error_response(errors)

        result = await run_in_threadpool(
            service.pull,
            meta=_meta(owner_id, kind=EnvelopeKind.QUERY),
            owner_id=owner_id,
            **params,
        )
        if not result.ok or result.value is None:
            return _error_response(result.errors)
        page = result.value
        return JSONResponse(
            {
                "next_cursor": page.next_cursor,
                "has_more": page.has_more,
                "changes": [_change_body(change) for change in page.changes],
            }
        )

    @router.post("/api/sync/pets/push")
    async def push_pets(request: Request) -> JSONResponse:
        try:
            owner_id = resolve_owner(request)
            body = await read_json_body(request)
        except HttpServerError as exc:
            return _http_error_response(exc)
        if not isinstance(body, Mapping):
            return _error_response(
                [validation_error("request body must be a JSON object")]
            )

        prechecked: list[OpRejection] = []
        translated: list[dict[str, Any]] = []
        for raw in _as_ops(body.get("ops")):
            op, rejection = _translate_pet_op(raw)
            if rejection is not None:
                prechecked.append(rejection)
            else:
                translated.append(op)

        result = await run_in_threadpool(
            service.push,
            meta=_meta(owner_id),
            owner_id=owner_id,
            device_id=_optional_text(body.get("device_id")),
            ops=translated,
        )
        if not result.ok or result.value is None:
            return _error_response(result.errors)
        merged = PushResult(
            accepted=result.value.accepted,
            rejected=[
                *prechecked,
                *(
                    item.model_copy(
                        update={
                            "reason": reasons.PET_REASON_ALIASES.get(
                                item.reason, item.reason
                            )
                        }
                    )
                    for item in result.value.rejected
                ),
            ],
        )
        return JSONResponse(_push_body(merged))

    @router.get("/api/sync/pets/pull")
    async def pull_pets(request: Request) -> JSONResponse:
        try:
            owner_id = resolve_owner(request)
        except HttpServerError as exc:
            return _http_error_response(exc)

        since, errors = _parse_since(request.query_params.get("since"))
        if errors:
            return _error_response(errors)
        device_id = _optional_text(request.query_params.get("device_id")) or "unknown"

        result: Envelope[PullPage] = await run_in_threadpool(
            service.pull,
            meta=_meta(owner_id, kind=EnvelopeKind.QUERY),
            owner_id=owner_id,
            since=since,
            limit=PET_PULL_LIMIT,
            entity_types=(PET_ENTITY_TYPE,),
        )
        if not result.ok or result.value is None:
            return _error_response(result.errors)
        page = result.value
        return JSONResponse(
            {
                "next_cursor": page.next_cursor,
                "has_more": page.has_more,
                "device_id": device_id,
                "changes": [_pet_change_body(change) for change in page.changes],
            }
        )

    @router.get("/api/sync/health")
    async def health() -> JSONResponse:
        result = await run_in_threadpool(
            service.health,
            meta=_meta("system", kind=EnvelopeKind.QUERY),
        )
        if not result.ok or result.value is None:
            return _error_response(result.errors)
        return JSONResponse(result.value.model_dump(mode="json"))


def _meta(owner_id: str, *, kind: EnvelopeKind = EnvelopeKind.COMMAND) -> EnvelopeMeta:
    return new_meta(kind=kind, source=_SOURCE, principal=owner_id)


def _optional_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_ops(value: object) -> list[Any]:
    """Return the submitted op list; anything other than a JSON array is empty."""
    if isinstance(value, list):
        return value
    return []


def _parse_since(value: str | None) -> tuple[int, list[ErrorDetail]]:
    """Parse the client cursor; absent means the start of the ledger."""
    if value is None or value.strip() == "":
        return 0, []
    try:
        since = int(value)
    except ValueError:
        since = -1
    if since < 0:
        return 0, [
            validation_error(
                "since must be a non-negative integer",
                code=codes.INVALID_ARGUMENT,
                metadata={"field": "since"},
            )
        ]
    return since, []


def _pull_params(request: Request) -> tuple[dict[str, Any], list[ErrorDetail]]:
    """Parse ``since``, ``limit`` and ``entity_types`` query parameters."""
    since, errors = _parse_since(request.query_params.get("since"))
    if errors:
        return {}, errors

    params: dict[str, Any] = {"since": since}
    raw_limit = request.query_params.get("limit")
    if raw_limit is not None and raw_limit.strip() != "":
        try:
            params["limit"] = int(raw_limit)
        except ValueError:
            return {}, [
                validation_error(
                    "limit must be an integer",
                    code=codes.INVALID_ARGUMENT,
                    metadata={"field": "limit"},
                )
            ]

    raw_types = request.query_params.get("entity_types")
    if raw_types is not None:
        entity_types = tuple(item.strip() for item in raw_types.split(",") if item.strip())
        if entity_types:
            params["entity_types"] = entity_types
    return params, []


def _translate_pet_op(raw: object) -> tuple[dict[str, Any], OpRejection | None]:
    """Map one pet-route op onto the generic operation shape.

    Pet routes check ``pet_id`` before ``op_id`` and report pet-specific
    reasons, so those checks run here before the generic validation.
    """
    if not isinstance(raw, Mapping):
        return {}, OpRejection(op_id=None, reason=reasons.INVALID_OP)

    op_id = raw.get("op_id")
    op_type = raw.get("type")
    pet_id = raw.get("pet_id")
    echoed = None if not op_id else str(op_id)
    if not op_id or not op_type or not pet_id:
        return {}, OpRejection(op_id=echoed, reason=reasons.INVALID_OP)
    if not is_uuid(pet_id):
        return {}, OpRejection(op_id=echoed, reason=reasons.INVALID_PET_ID)
    if not is_uuid(op_id):
        return {}, OpRejection(op_id=echoed, reason=reasons.INVALID_OP_ID)
    change_type = _PET_CHANGE_TYPES.get(op_type) if isinstance(op_type, str) else None
    if change_type is None:
        return {}, OpRejection(op_id=echoed, reason=reasons.UNSUPPORTED_TYPE)

    op: dict[str, Any] = {
        "op_id": op_id,
        "entity_type": PET_ENTITY_TYPE,
        "entity_id": pet_id,
        "change_type": change_type,
        "base_version": raw.get("base_version"),
        "client_ts": raw.get("client_ts") or None,
    }
    if change_type == ChangeType.UPSERT.value:
        patch = raw.get("patch")
        op["record"] = {} if patch is None else patch
    return op, None


def _push_body(result: PushResult) -> dict[str, Any]:
    return {
        "accepted": list(result.accepted),
        "rejected": [_rejection_body(item) for item in result.rejected],
    }


def _rejection_body(rejection: OpRejection) -> dict[str, Any]:
    body: dict[str, Any] = {"op_id": rejection.op_id, "reason": rejection.reason}
    if rejection.current_version is not None:
        body["current_version"] = rejection.current_version
    return body


def _change_body(change: ChangeRecord) -> dict[str, Any]:
    return {
        "change_id": change.change_id,
        "entity_type": change.entity_type,
        "entity_id": change.entity_id,
        "change_type": change.change_type.value,
        "record": change.record,
        "version": change.version,
    }


def _pet_change_body(change: ChangeRecord) -> dict[str, Any]:
    """Render one pet change in the pet-route wire shape."""
    if change.change_type is ChangeType.DELETE:
        return {
            "change_id": change.change_id,
            "type": "pet.delete",
            "pet_id": change.entity_id,
        }
    return {
        "change_id": change.change_id,
        "type": "pet.upsert",
        "pet_id": change.entity_id,
        "record": change.record,
        "version": change.version,
    }


def _error_response(errors: Sequence[ErrorDetail]) -> JSONResponse:
    return JSONResponse(
        error_body(errors),
        status_code=status_code_for_errors(errors),
    )


def _http_error_response(exc: HttpServerError) -> JSONResponse:
    """Map transport-level request failures onto HTTP error responses."""
    if isinstance(exc, MissingHeaderError):
        return JSONResponse(
            error_body(
                [
                    policy_error(
                        "authenticated owner is required",
                        code=codes.UNAUTHENTICATED,
                        metadata={"header": exc.header_name},
                    )
                ]
            ),
            status_code=401,
        )
    return _error_response([validation_error(str(exc), code=codes.INVALID_ARGUMENT)])
