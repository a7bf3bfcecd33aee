"""Pytest configuration and shared fixtures."""

import pytest

from projectflow.config import Settings
from projectflow.formula import FormulaEngine
from projectflow.sheets import Column, ColumnType


@pytest.fixture
def test_settings() -> Settings:
    """Create settings with test values."""
    return Settings(
        host="127.0.0.1",
        port=8000,
        debug=False,
        cors_allow_origins=["*"],
        max_formula_length=2000,
        max_formula_depth=64,
        max_rows_per_request=100,
        formula_chaining=False,
    )


@pytest.fixture
def engine(test_settings: Settings) -> FormulaEngine:
    """Engine with formula chaining disabled."""
    return FormulaEngine(test_settings)


@pytest.fixture
def chaining_engine(test_settings: Settings) -> FormulaEngine:
    """Engine that evaluates formulas referenced by other formulas."""
    return FormulaEngine(test_settings.model_copy(update={"formula_chaining": True}))


@pytest.fixture
def columns() -> list[Column]:
    """Columns of the default project sheet."""
    return [
        Column(id="task", title="Task Name", type=ColumnType.TEXT, width=250),
        Column(id="owner", title="Owner", type=ColumnType.TEXT, width=120),
        Column(
            id="status",
            title="Status",
            type=ColumnType.DROPDOWN,
            width=120,
            options=["To Do", "In Progress", "Done", "Blocked"],
        ),
        Column(id="start", title="Start Date", type=ColumnType.DATE, width=140),
        Column(id="due", title="To Date", type=ColumnType.DATE, width=140),
        Column(id="progress", title="Progress", type=ColumnType.NUMBER, width=100),
        Column(id="calc", title="Calc", type=ColumnType.TEXT, width=120),
        Column(id="extra", title="Extra", type=ColumnType.TEXT, width=120),
    ]


@pytest.fixture
def rows() -> list[dict]:
    """Rows of the default project sheet."""
    return [
        {
            "id": "1",
            "task": "Project Kickoff",
            "owner": "Alice",
            "status": "Done",
            "start": "2024-05-01",
            "due": "2024-05-02",
            "progress": 10,
        },
        {
            "id": "2",
            "task": "Market Analysis",
            "owner": "Bob",
            "status": "In Progress",
            "start": "2024-05-03",
            "due": "2024-05-10",
            "progress": 20,
        },
        {
            "id": "3",
            "task": "Design Prototypes",
            "owner": "Charlie",
            "status": "To Do",
            "start": "2024-05-11",
            "due": "2024-05-20",
            "progress": 30,
        },
    ]
