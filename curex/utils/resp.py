# FILE: curex/utils/resp.py
from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Query

from curex.core.config import settings
from curex.schemas.common import (
    ApiResponse,
    ApiErrorResponse,
    PageLinks,
    PageMeta,
)


def ok(data: Any = None,
       message: str = "OK",
       status_code: int = 200,
       **extra: Any) -> JSONResponse:
    payload = ApiResponse(success=True,
                          status=status_code,
                          message=message,
                          data=data).model_dump()
    payload.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def err(msg: str,
        status_code: int = 400,
        *,
        error: Optional[str] = None,
        errors: Optional[Dict[str, List[str]]] = None) -> JSONResponse:
    payload = ApiErrorResponse(status=status_code,
                               message=msg,
                               error=error,
                               errors=errors).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def debug_error(exc: Exception) -> Optional[str]:
    """Raw exception text, exposed only in debug mode."""
    return str(exc) if settings.DEBUG else None


def paginate(query: Query,
             request: Request,
             page: int = 1,
             per_page: int = 15) -> Tuple[list, Dict[str, Any], Dict[str, Any]]:
    """
    Slice a SQLAlchemy query and build meta/links the way list endpoints
    return them. Returns (rows, meta, links).
    """
    page = max(1, int(page or 1))
    per_page = max(1, int(per_page or 15))

    total = query.order_by(None).count()
    last_page = max(1, math.ceil(total / per_page))
    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    first_row = (page - 1) * per_page + 1 if rows else None
    last_row = (first_row + len(rows) - 1) if rows else None

    meta = PageMeta(current_page=page,
                    last_page=last_page,
                    per_page=per_page,
                    total=total,
                    from_=first_row,
                    to=last_row).dump()

    def _url(n: int) -> str:
        return str(request.url.include_query_params(page=n))

    links = PageLinks(
        first=_url(1),
        last=_url(last_page),
        prev=_url(page - 1) if page > 1 else None,
        next=_url(page + 1) if page < last_page else None,
    ).model_dump()
    return rows, meta, links


def ok_page(query: Query,
            request: Request,
            serialize: Callable[[Any], Any],
            *,
            page: int = 1,
            per_page: int = 15,
            message: str = "OK") -> JSONResponse:
    rows, meta, links = paginate(query, request, page, per_page)
    return ok([serialize(r) for r in rows], message, meta=meta, links=links)
