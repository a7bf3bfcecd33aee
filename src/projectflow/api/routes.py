"""API routes for ProjectFlow."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..formula import FormulaAnalysis, get_engine
from ..formula.errors import SENTINEL_VALUES
from ..sheets import CellView, Column, Row, Sheet, is_formula

logger = logging.getLogger(__name__)

router = APIRouter()


class EvaluateRequest(BaseModel):
    """Request to evaluate a single formula."""

    formula: str
    row: Row = Field(default_factory=dict)
    rows: Optional[list[Row]] = None  # Defaults to [row]
    columns: list[Column] = Field(default_factory=list)


class EvaluateResponse(BaseModel):
    """Result of evaluating a single formula."""

    formula: str
    value: Any = None
    is_error: bool = False


class ValidateRequest(BaseModel):
    """Request to validate a formula without evaluating it."""

    formula: str


class ComputeRequest(Sheet):
    """Request to recompute a sheet."""

    include_cells: bool = False


class CellError(BaseModel):
    """A formula cell that failed to evaluate."""

    row_id: Optional[str] = None
    column_id: str
    formula: str
    value: str


class ComputeResponse(BaseModel):
    """Recomputed sheet rows."""

    rows: list[Row]
    formula_cells: int = 0
    errors: list[CellError] = Field(default_factory=list)
    cells: Optional[list[CellView]] = None


@router.get("/health")
async def health_check():
    """Health check endpoint with diagnostics."""
    from .. import __version__
    from ..config import settings

    return {
        "status": "ok",
        "service": "projectflow",
        "version": __version__,
        "config": {
            "formula_chaining": settings.formula_chaining,
            "max_formula_length": settings.max_formula_length,
            "max_formula_depth": settings.max_formula_depth,
            "max_rows_per_request": settings.max_rows_per_request,
        },
    }


# Formula endpoints


@router.post("/formulas/evaluate", response_model=EvaluateResponse)
async def evaluate(request: EvaluateRequest):
    """Evaluate one formula against a row."""
    engine = get_engine()
    rows = request.rows if request.rows is not None else [request.row]

    try:
        value = engine.evaluate_formula(request.formula, request.row, rows, request.columns)
    except Exception as e:
        logger.exception("Unexpected failure evaluating formula")
        raise HTTPException(status_code=500, detail=str(e))

    return EvaluateResponse(
        formula=request.formula,
        value=value,
        is_error=is_formula(request.formula) and isinstance(value, str) and value in SENTINEL_VALUES,
    )


@router.post("/formulas/validate", response_model=FormulaAnalysis)
async def validate(request: ValidateRequest):
    """Check a formula's syntax and list what it references."""
    return get_engine().analyze_formula(request.formula)


# Sheet endpoints


@router.post("/sheets/compute", response_model=ComputeResponse)
async def compute_sheet(request: ComputeRequest):
    """Recompute every formula cell of a sheet."""
    from ..config import settings

    if len(request.rows) > settings.max_rows_per_request:
        raise HTTPException(
            status_code=413,
            detail=(
                f"Sheet has {len(request.rows)} rows, "
                f"exceeding limit of {settings.max_rows_per_request}"
            ),
        )

    engine = get_engine()
    try:
        computed = engine.compute_sheet_data(request)
        cells = engine.build_cell_views(request.rows, computed, request.columns)
    except Exception as e:
        logger.exception("Unexpected failure computing sheet")
        raise HTTPException(status_code=500, detail=str(e))

    errors = [
        CellError(row_id=cell.row_id, column_id=cell.column_id, formula=cell.raw, value=cell.value)
        for cell in cells
        if cell.is_error
    ]
    return ComputeResponse(
        rows=computed,
        formula_cells=sum(1 for cell in cells if cell.is_formula),
        errors=errors,
        cells=cells if request.include_cells else None,
    )
