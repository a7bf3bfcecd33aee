"""Result models for formula inspection."""

from pydantic import BaseModel, Field


class FormulaAnalysis(BaseModel):
    """Static analysis of a formula string."""

    formula: str
    is_formula: bool  # False when the text does not start with '='
    valid: bool
    errors: list[str] = Field(default_factory=list)
    references: list[str] = Field(default_factory=list)  # [Column] names, in order
    functions: list[str] = Field(default_factory=list)  # Upper-cased, IF included
