# FILE: curex/schemas/common.py
from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class ApiResponse(BaseModel):
    success: bool
    status: int
    message: str
    data: Optional[Any] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


class ApiErrorResponse(BaseModel):
    success: bool = False
    status: int
    message: str
    error: Optional[str] = None
    errors: Optional[Dict[str, List[str]]] = None


class PageMeta(BaseModel):
    current_page: int
    last_page: int
    per_page: int
    total: int
    # 1-based row numbers of the first/last item on the page; None when empty
    from_: Optional[int] = None
    to: Optional[int] = None

    def dump(self) -> dict:
        d = self.model_dump()
        d["from"] = d.pop("from_")
        return d


class PageLinks(BaseModel):
    first: str
    last: str
    prev: Optional[str] = None
    next: Optional[str] = None




def reject_null(v: Any, info) -> Any:
    """
    Partial updates leave unsent fields alone, but an explicit null on a
    NOT NULL column must fail validation instead of reaching the flush.
    Use as the body of a `field_validator` listing those columns.
    """
    if v is None:
        raise ValueError(f"The {info.field_name} field may not be null.")
    return v
