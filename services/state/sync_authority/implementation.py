"""Concrete Sync Authority Service implementation."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError

from packages.petcare_shared.envelope import (
    Envelope,
    EnvelopeMeta,
    failure,
    success,
    validate_meta,
)
from packages.petcare_shared.errors import (
    ErrorDetail,
    codes,
    conflict_error,
    dependency_error,
    not_found_error,
    validation_error,
)
from packages.petcare_shared.ids import generate_uuid_str
from packages.petcare_shared.logging import (
    fields,
    get_logger,
    log_context,
    public_api_instrumented,
)
from resources.substrates.postgres.errors import normalize_postgres_error
from services.state.sync_authority import codes as reasons
from services.state.sync_authority.component import SERVICE_COMPONENT_ID
from services.state.sync_authority.config import SyncAuthoritySettings
from services.state.sync_authority.domain import (
    ChangeRecord,
    ChangeType,
    EntityState,
    HealthStatus,
    MutationOutcome,
    MutationStatus,
    OpRejection,
    PullPage,
    PushResult,
    SyncOperation,
)
from services.state.sync_authority.interfaces import (
    MutationCommand,
    StaleEntityError,
    SyncRepository,
)
from services.state.sync_authority.policy import ConflictPolicyResolver
from services.state.sync_authority.registry import EntityTypeRegistry
from services.state.sync_authority.service import SyncAuthorityService
from services.state.sync_authority.validation import (
    EntityKeyRequest,
    EntityListRequest,
    PullRequest,
    PushRequest,
    parse_operation,
)

_LOGGER = get_logger(__name__)
_RETRYABLE_COMMIT_ERRORS = (IntegrityError, StaleEntityError)


class DefaultSyncAuthorityService(SyncAuthorityService):
    """Default sync engine over one entity store and change ledger."""

    def __init__(
        self,
        *,
        settings: SyncAuthoritySettings,
        repository: SyncRepository,
        registry: EntityTypeRegistry,
    ) -> None:
        self._settings = settings
        self._repository = repository
        self._registry = registry
        self._policies = ConflictPolicyResolver(settings=settings, registry=registry)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("owner_id", "device_id"),
    )
    def push(
        self,
        *,
        meta: EnvelopeMeta,
        owner_id: str,
        device_id: str | None,
        ops: Sequence[Mapping[str, Any]],
    ) -> Envelope[PushResult]:
        """Apply an ordered batch of client operations independently."""
        request, errors = self._validate_request(
            meta=meta,
            model=PushRequest,
            payload={
                "owner_id": owner_id,
                "device_id": self._device_id(device_id),
                "ops": list(ops),
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, PushRequest)

        accepted: list[str] = []
        rejected: list[OpRejection] = []
        for raw in request.ops:
            operation, rejection = parse_operation(raw, registry=self._registry)
            if rejection is not None:
                rejected.append(rejection)
                continue
            assert operation is not None
            echoed = str(raw["op_id"])

            command = self._command(
                owner_id=request.owner_id,
                operation=operation,
                device_id=request.device_id,
            )
            try:
                outcome = self._mutate_with_retry(command)
            except Exception as exc:  # noqa: BLE001
                self._log_op_failure(command=command, exc=exc)
                rejected.append(
                    OpRejection(op_id=echoed, reason=reasons.SERVER_ERROR)
                )
                continue

            if outcome.status is MutationStatus.CONFLICT:
                rejected.append(
                    OpRejection(
                        op_id=echoed,
                        reason=reasons.CONFLICT,
                        current_version=outcome.current_version,
                    )
                )
            elif outcome.status is MutationStatus.FOREIGN_OP_ID:
                rejected.append(
                    OpRejection(op_id=echoed, reason=reasons.INVALID_OP_ID)
                )
            else:
                accepted.append(echoed)

        return success(
            meta=meta,
            payload=PushResult(accepted=accepted, rejected=rejected),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("owner_id",),
    )
    def pull(
        self,
        *,
        meta: EnvelopeMeta,
        owner_id: str,
        since: int = 0,
        limit: int | None = None,
        entity_types: Sequence[str] | None = None,
    ) -> Envelope[PullPage]:
        """Return one page of ledger entries after the client cursor."""
        request, errors = self._validate_request(
            meta=meta,
            model=PullRequest,
            payload={
                "owner_id": owner_id,
                "since": since,
                "limit": limit,
                "entity_types": None if entity_types is None else tuple(entity_types),
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, PullRequest)

        page_size = self._page_size(request.limit)
        try:
            changes = self._repository.list_changes(
                owner_id=request.owner_id,
                since=request.since,
                limit=page_size,
                entity_types=request.entity_types,
            )
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(meta=meta, operation="pull", exc=exc)

        return success(
            meta=meta,
            payload=PullPage(
                next_cursor=changes[-1].change_id if changes else request.since,
                has_more=len(changes) == page_size,
                changes=changes,
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("owner_id", "entity_type", "entity_id", "op_id"),
    )
    def mutate_entity(
        self,
        *,
        meta: EnvelopeMeta,
        owner_id: str,
        entity_type: str,
        entity_id: str,
        change_type: str,
        record: Mapping[str, Any] | None = None,
        base_version: int | None = None,
        device_id: str | None = None,
        op_id: str | None = None,
        client_ts: datetime | None = None,
    ) -> Envelope[ChangeRecord]:
        """Apply one server-side CRUD mutation through the shared mutate path."""
        errors = validate_meta(meta)
        if errors:
            return failure(meta=meta, errors=errors)
        if not isinstance(owner_id, str) or owner_id.strip() == "":
            return failure(
                meta=meta,
                errors=[
                    validation_error(
                        "owner_id is required",
                        code=codes.MISSING_REQUIRED_FIELD,
                        metadata={"field": "owner_id"},
                    )
                ],
            )

        operation, rejection = parse_operation(
            {
                "op_id": op_id or generate_uuid_str(),
                "entity_type": entity_type,
                "entity_id": entity_id,
                "change_type": change_type,
                "record": None if record is None else dict(record),
                "base_version": base_version,
                "client_ts": client_ts,
            },
            registry=self._registry,
        )
        if rejection is not None:
            return failure(
                meta=meta,
                errors=[
                    validation_error(
                        f"mutation rejected: {rejection.reason}",
                        code=codes.INVALID_ARGUMENT,
                        metadata={"reason": rejection.reason},
                    )
                ],
            )
        assert operation is not None

        command = self._command(
            owner_id=owner_id.strip(),
            operation=operation,
            device_id=self._device_id(device_id),
        )
        try:
            outcome = self._mutate_with_retry(command)
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(meta=meta, operation="mutate_entity", exc=exc)

        if outcome.status is MutationStatus.CONFLICT:
            return failure(
                meta=meta,
                errors=[
                    conflict_error(
                        "entity version conflict",
                        code=codes.VERSION_CONFLICT,
                        metadata={
                            "reason": reasons.CONFLICT,
                            "current_version": str(outcome.current_version),
                        },
                    )
                ],
            )
        if outcome.status is MutationStatus.FOREIGN_OP_ID or outcome.change is None:
            return failure(
                meta=meta,
                errors=[
                    validation_error(
                        "op_id already used by another owner",
                        code=codes.INVALID_ARGUMENT,
                        metadata={"reason": reasons.INVALID_OP_ID},
                    )
                ],
            )
        return success(meta=meta, payload=outcome.change)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("owner_id", "entity_type", "entity_id"),
    )
    def get_entity(
        self,
        *,
        meta: EnvelopeMeta,
        owner_id: str,
        entity_type: str,
        entity_id: str,
    ) -> Envelope[EntityState]:
        """Read the current state of one live entity."""
        request, errors = self._validate_request(
            meta=meta,
            model=EntityKeyRequest,
            payload={
                "owner_id": owner_id,
                "entity_type": entity_type,
                "entity_id": entity_id,
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, EntityKeyRequest)

        try:
            entity = self._repository.get_entity(
                owner_id=request.owner_id,
                entity_type=request.entity_type,
                entity_id=request.entity_id,
            )
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(meta=meta, operation="get_entity", exc=exc)

        if entity is None or entity.deleted:
            return failure(
                meta=meta,
                errors=[
                    not_found_error(
                        "entity not found",
                        code=codes.RESOURCE_NOT_FOUND,
                        metadata={
                            "entity_type": request.entity_type,
                            "entity_id": request.entity_id,
                        },
                    )
                ],
            )
        return success(meta=meta, payload=entity)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("owner_id", "entity_type"),
    )
    def list_entities(
        self,
        *,
        meta: EnvelopeMeta,
        owner_id: str,
        entity_type: str,
        include_deleted: bool = False,
    ) -> Envelope[list[EntityState]]:
        """List entities of one type for one owner."""
        request, errors = self._validate_request(
            meta=meta,
            model=EntityListRequest,
            payload={
                "owner_id": owner_id,
                "entity_type": entity_type,
                "include_deleted": include_deleted,
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, EntityListRequest)

        try:
            entities = self._repository.list_entities(
                owner_id=request.owner_id,
                entity_type=request.entity_type,
                include_deleted=request.include_deleted,
            )
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(meta=meta, operation="list_entities", exc=exc)
        return success(meta=meta, payload=entities)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
    )
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return readiness based on a bounded repository probe."""
        errors = validate_meta(meta)
        if errors:
            return failure(meta=meta, errors=errors)
        try:
            self._repository.probe()
        except Exception as exc:  # noqa: BLE001
            return self._storage_failure(meta=meta, operation="health", exc=exc)
        return success(
            meta=meta,
            payload=HealthStatus(
                service_ready=True,
                substrate_ready=True,
                detail="ok",
            ),
        )

    def _mutate_with_retry(self, command: MutationCommand) -> MutationOutcome:
        """Run one mutate transaction, retrying commit races in fresh transactions.

        A unique-key or compare-and-swap failure means a concurrent writer won
        the race; the next attempt observes its committed state (for example
        the duplicate ``op_id``) and resolves deterministically.
        """
        registration = self._registry.get(command.entity_type)
        assert registration is not None
        policy = self._policies.for_entity_type(command.entity_type)

        attempt = 1
        while True:
            try:
                outcome = self._repository.mutate(
                    command=command,
                    policy=policy,
                    merger=registration.merger,
                )
            except _RETRYABLE_COMMIT_ERRORS as exc:
                if attempt >= self._settings.max_commit_attempts:
                    raise
                with log_context(_command_log_context(command)):
                    _LOGGER.info(
                        "Retrying sync mutation after commit race: attempt=%s exception_type=%s",
                        attempt,
                        type(exc).__name__,
                    )
                attempt += 1
                continue
            break

        if outcome.overrode_version is not None:
            with log_context(
                {
                    **_command_log_context(command),
                    fields.EVENT: fields.SYNC_CONFLICT_EVENT,
                    fields.BASE_VERSION: command.base_version,
                    fields.CURRENT_VERSION: outcome.overrode_version,
                }
            ):
                _LOGGER.warning(
                    "Sync conflict resolved by %s", policy.name
                )
        return outcome

    def _command(
        self,
        *,
        owner_id: str,
        operation: SyncOperation,
        device_id: str,
    ) -> MutationCommand:
        """Build one repository command from a validated operation."""
        op_device = (operation.device_id or "").strip()
        return MutationCommand(
            owner_id=owner_id,
            entity_type=operation.entity_type,
            entity_id=operation.entity_id,
            change_type=ChangeType(operation.change_type),
            record=getattr(operation, "record", None),
            base_version=operation.base_version,
            client_ts=_as_utc(operation.client_ts),
            device_id=op_device or device_id,
            op_id=operation.op_id,
        )

    def _device_id(self, device_id: str | None) -> str:
        normalized = "" if device_id is None else str(device_id).strip()
        return normalized or self._settings.default_device_id

    def _page_size(self, limit: int | None) -> int:
        """Clamp a requested page size into ``[1, pull_max_limit]``."""
        requested = self._settings.pull_default_limit if limit is None else limit
        return min(max(requested, 1), self._settings.pull_max_limit)

    def _validate_request(
        self,
        *,
        meta: EnvelopeMeta,
        model: type[BaseModel],
        payload: dict[str, Any] | None,
    ) -> tuple[BaseModel | None, list[ErrorDetail]]:
        """Validate envelope metadata and request payload model."""
        errors = validate_meta(meta)
        if errors:
            return None, errors

        data = payload or {}
        try:
            request = model.model_validate(data)
        except ValidationError as exc:
            return None, [
                validation_error(
                    f"request validation failed: {err['msg']}",
                    code=codes.INVALID_ARGUMENT,
                    metadata={"field": ".".join(str(p) for p in err["loc"])},
                )
                for err in exc.errors()
            ]

        return request, []

    def _storage_failure(
        self,
        *,
        meta: EnvelopeMeta,
        operation: str,
        exc: Exception,
    ) -> Envelope[Any]:
        """Map one storage/runtime exception into structured envelope errors."""
        if _is_postgres_error(exc):
            return failure(meta=meta, errors=[normalize_postgres_error(exc)])
        _LOGGER.warning(
            "%s failed due to dependency error: exception_type=%s",
            operation,
            type(exc).__name__,
            exc_info=exc,
        )
        return failure(
            meta=meta,
            errors=[
                dependency_error(
                    f"{operation} failed",
                    code=codes.DEPENDENCY_FAILURE,
                    metadata={"exception_type": type(exc).__name__},
                )
            ],
        )

    def _log_op_failure(self, *, command: MutationCommand, exc: Exception) -> None:
        with log_context(
            {
                **_command_log_context(command),
                fields.EVENT: fields.SYNC_OP_FAILURE_EVENT,
            }
        ):
            _LOGGER.warning(
                "Sync operation failed: exception_type=%s",
                type(exc).__name__,
                exc_info=exc,
            )


def _command_log_context(command: MutationCommand) -> dict[str, object]:
    return {
        fields.OWNER_ID: command.owner_id,
        fields.DEVICE_ID: command.device_id,
        fields.OP_ID: command.op_id,
        fields.ENTITY_TYPE: command.entity_type,
        fields.ENTITY_ID: command.entity_id,
    }


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _is_postgres_error(exc: Exception) -> bool:
    """Return whether ``exc`` originates from SQLAlchemy or a DB driver."""
    module = type(exc).__module__
    return module.startswith("sqlalchemy") or module.startswith("psycopg")
