import inspect
from typing import Optional

from fastapi import HTTPException
from supabase import AsyncClient

from .errors import InternalError
from .logger import logger

DUPLICATE = "duplicate"


def _apply_filters(query, filters: dict | None):
    """Apply ``{column: value}`` equality filters."""
    for key, value in (filters or {}).items():
        query = query.eq(key, value)
    return query


async def safe_call(coro, *, detail: str):
    """Await a Supabase call and translate storage errors into ``InternalError``.

    ``HTTPException`` subclasses (auth, not-found, ...) are intentional and
    pass through untouched.
    """
    try:
        return await coro if inspect.isawaitable(coro) else coro  # type: ignore[misc]
    except HTTPException:
        raise
    except Exception as exc:
        logger.error(
            "storage.failure",
            extra={"extra": {"detail": detail, "error": str(exc), "error_type": type(exc).__name__}},
        )
        raise InternalError(detail) from exc


async def insert_data(
    supabase: AsyncClient,
    table_name: str,
    data: dict,
):
    """Insert one row. Returns ``None`` on success or ``DUPLICATE`` on a unique violation."""
    try:
        await supabase.table(table_name).insert(data).execute()
        return None
    except Exception as e:
        # supabase errors are badly structured and must cast to string and parsed
        if "duplicate" in str(e).lower():
            logger.warning(f"Duplicate insert into {table_name}: {e}")
            return DUPLICATE
        logger.error(f"Error during insert to {table_name}: {e}")
        raise


async def query_data(
    supabase: AsyncClient,
    table_name: str,
    filters: dict = None,
    order_by: tuple = None,
    select_fields: str = "*",
    limit: Optional[int] = None,
):
    """
    Query a Supabase table with equality filters, ordering and limit.

    :param table_name: Name of the table to query.
    :param filters: Dictionary of column name to the value it must equal.
    :param order_by: Tuple (column_name, desc) where desc=True means descending order.
    :param select_fields: Fields to select (default is "*").
    :param limit: Optional integer to limit the number of results.
    :return: Query result from Supabase.
    """
    query = _apply_filters(supabase.table(table_name).select(select_fields), filters)

    if order_by:
        column, desc = order_by
        query = query.order(column, desc=desc)

    if limit:
        query = query.limit(limit)

    return await query.execute()


async def update_data(
    supabase: AsyncClient,
    table_name: str,
    *,
    update_values: dict,
    filters: dict,
):
    """Update the rows matching ``filters`` with ``update_values``."""
    if not filters:
        # Never issue an unfiltered UPDATE.
        raise ValueError(f"update on {table_name} requires filters")
    query = _apply_filters(supabase.table(table_name).update(update_values), filters)
    try:
        await query.execute()
    except Exception as e:
        logger.error(f"Error updating {table_name}: {e}")
        raise


async def query_one(
    supabase: AsyncClient,
    table_name: str,
    match: dict | None = None,
    order_by: tuple | None = None,
    select_fields: str = "*",
):
    """Return the first (or *None*) row that matches the filters."""
    resp = await query_data(
        supabase,
        table_name,
        filters=match or {},
        order_by=order_by,
        select_fields=select_fields,
        limit=1,
    )
    # Supabase Python client returns a .data attribute on the response object.
    rows = getattr(resp, "data", None) or []
    return rows[0] if rows else None


async def query_many(
    supabase: AsyncClient,
    table_name: str,
    match: dict | None = None,
    order_by: tuple | None = None,
    select_fields: str = "*",
    limit: int | None = None,
):
    """Return a list of rows that match the filters (empty list if none)."""
    resp = await query_data(
        supabase,
        table_name,
        filters=match or {},
        order_by=order_by,
        select_fields=select_fields,
        limit=limit,
    )
    return getattr(resp, "data", None) or []
