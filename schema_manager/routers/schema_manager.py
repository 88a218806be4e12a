"""Schema manager endpoint: one action-dispatched operation per request.

Request body: ``{"action": <name>, ...action fields}``. Actions:
get_schema, add_column, delete_column, rename_column, create_table.
"""

import time
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ValidationError

from schema_manager.catalog import SchemaCatalog
from schema_manager.dependencies import get_catalog
from schema_manager.errors import SchemaManagerError, SchemaValidationError
from schema_manager.metrics import OPERATION_COUNT, OPERATION_DURATION
from schema_manager.models.responses import (
    AddColumnRequest,
    CreateTableRequest,
    DeleteColumnRequest,
    ErrorResponse,
    OperationResponse,
    RenameColumnRequest,
    SchemaResponse,
    TableInfo,
)
from schema_manager.schema import SchemaManager

logger = structlog.get_logger()
router = APIRouter(prefix="", tags=["schema"])

ACTION_MODELS: dict[str, type[BaseModel] | None] = {
    "get_schema": None,
    "add_column": AddColumnRequest,
    "delete_column": DeleteColumnRequest,
    "rename_column": RenameColumnRequest,
    "create_table": CreateTableRequest,
}


def parse_action(body: Any) -> tuple[str, BaseModel | None]:
    """
    Resolve the action name and validate its fields.

    Raises:
        SchemaValidationError: If the body is not an object, the action is
            unknown, or a field is missing or has the wrong type
    """
    if not isinstance(body, dict):
        raise SchemaValidationError("Request body must be a JSON object")

    action = body.get("action")
    if not isinstance(action, str) or action not in ACTION_MODELS:
        raise SchemaValidationError(f"Unknown action: {action}")

    model = ACTION_MODELS[action]
    if model is None:
        return action, None

    try:
        return action, model.model_validate(body)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise SchemaValidationError(f"Invalid field '{field}': {error['msg']}") from None


def _log_fields(payload: BaseModel | None) -> dict[str, Any]:
    """Request fields worth logging (no default values, no column lists)."""
    if payload is None:
        return {}
    fields = payload.model_dump(exclude={"action", "default_value", "columns", "foreign_keys"})
    if isinstance(payload, CreateTableRequest):
        fields["column_count"] = len(payload.columns)
        fields["foreign_key_count"] = len(payload.foreign_keys)
    return fields


def run_action(
    manager: SchemaManager, action: str, payload: BaseModel | None
) -> SchemaResponse | OperationResponse:
    """Execute a parsed action and wrap its result in a response model."""
    if action == "get_schema":
        tables = manager.get_schema()
        return SchemaResponse(tables=[TableInfo(**table) for table in tables])

    if isinstance(payload, AddColumnRequest):
        message = manager.add_column(
            table_name=payload.table_name,
            column_name=payload.column_name,
            column_type=payload.column_type,
            is_nullable=payload.is_nullable,
            default_value=payload.default_value,
        )
    elif isinstance(payload, DeleteColumnRequest):
        message = manager.delete_column(payload.table_name, payload.column_name)
    elif isinstance(payload, RenameColumnRequest):
        message = manager.rename_column(payload.table_name, payload.old_name, payload.new_name)
    elif isinstance(payload, CreateTableRequest):
        message = manager.create_table(
            table_name=payload.table_name,
            columns=[col.model_dump() for col in payload.columns],
            foreign_keys=[fk.model_dump() for fk in payload.foreign_keys],
        )
    else:
        raise SchemaValidationError(f"Unknown action: {action}")

    return OperationResponse(success=True, message=message)


@router.post(
    "/schema-manager",
    response_model=SchemaResponse | OperationResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Schema operation",
    description=(
        "Inspect the schema or change it: get_schema, add_column, delete_column, "
        "rename_column, create_table."
    ),
)
async def schema_manager(
    request: Request,
    catalog: Annotated[SchemaCatalog, Depends(get_catalog)],
) -> SchemaResponse | OperationResponse:
    """
    Run one schema action.

    Authentication happens in the catalog dependency, before the body is read.
    Errors are reported as ``{"error": message}`` by the application's
    exception handler.
    """
    try:
        body = await request.json()
    except ValueError:
        raise SchemaValidationError("Request body must be valid JSON") from None

    action, payload = parse_action(body)
    fields = _log_fields(payload)
    manager = SchemaManager(catalog)

    start_time = time.time()
    logger.info(f"{action}_start", **fields)

    try:
        result = run_action(manager, action, payload)
    except SchemaManagerError as e:
        OPERATION_COUNT.labels(operation=action, status="failed").inc()
        logger.warning(
            f"{action}_failed",
            error=e.message,
            error_type=type(e).__name__,
            **fields,
        )
        raise
    except Exception as e:
        OPERATION_COUNT.labels(operation=action, status="error").inc()
        logger.error(f"{action}_failed", error=str(e), exc_info=True, **fields)
        raise
    finally:
        OPERATION_DURATION.labels(operation=action).observe(time.time() - start_time)

    duration_ms = int((time.time() - start_time) * 1000)
    OPERATION_COUNT.labels(operation=action, status="success").inc()
    logger.info(f"{action}_success", duration_ms=duration_ms, **fields)

    return result
