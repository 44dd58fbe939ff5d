"""
FastAPI endpoints exposing the filter engine.
"""

from typing import Any, Dict, List, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..codec import PayloadError, from_payload, is_well_formed
from ..registry import Registry
from ..utils import merge_payloads, payload_to_string, payloads_equal


router = APIRouter(prefix="/filters", tags=["Filters"])

# Loaded from FIELDS_FILE at application startup
REG = Registry()


def get_registry() -> Registry:
    return REG


class FilterRequest(BaseModel):
    """Request model carrying one filter payload."""

    filter: Optional[Dict[str, Any]] = None


class MergeRequest(BaseModel):
    """Request model for merging filters."""

    filters: List[Optional[Dict[str, Any]]] = Field(default_factory=list)
    operator: Literal["And", "Or"] = "And"


class EqualsRequest(BaseModel):
    left: Optional[Dict[str, Any]] = None
    right: Optional[Dict[str, Any]] = None


def _require_well_formed(payload: Optional[Dict[str, Any]], name: str = "filter") -> None:
    if not is_well_formed(payload):
        raise HTTPException(status_code=400, detail=f"Malformed {name} payload")


@router.get("/fields")
def list_fields(reg: Registry = Depends(get_registry)):
    """List configured fields with their kind, operators and options."""
    fields = reg.describe()
    return {"fields": fields, "count": len(fields)}


@router.get("/fields/{field_name}")
def get_field(field_name: str, reg: Registry = Depends(get_registry)):
    for item in reg.describe():
        if item["name"] == field_name:
            return item
    raise HTTPException(status_code=404, detail=f"Field '{field_name}' not found")


@router.post("/validate")
def validate_filter(req: FilterRequest, reg: Registry = Depends(get_registry)):
    """
    Load a payload against the field registry and report per-node errors
    together with the canonical payload that would actually be sent.
    """
    try:
        builder = from_payload(req.filter, reg)
    except PayloadError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = builder.build_payload()
    return {
        "valid": not result.has_invalid_nodes,
        "hasInvalidNodes": result.has_invalid_nodes,
        "errors": [
            {"nodeId": e.node_id, "field": e.field, "message": e.message}
            for e in result.errors
        ],
        "payload": result.payload,
        "display": payload_to_string(result.payload),
    }


@router.post("/render")
def render_filter(req: FilterRequest):
    _require_well_formed(req.filter)
    return {"display": payload_to_string(req.filter)}


@router.post("/merge")
def merge_filters(req: MergeRequest):
    return {"filter": merge_payloads(req.filters, req.operator)}


@router.post("/equals")
def compare_filters(req: EqualsRequest):
    _require_well_formed(req.left, "left")
    _require_well_formed(req.right, "right")
    return {"equal": payloads_equal(req.left, req.right)}
