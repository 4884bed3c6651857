"""
FILE: Schemas/methodologist.py
-------------------------------
Pydantic output schema for the pre-run test choice check.
"""

from pydantic import BaseModel, Field

from Schemas.statistician import TestId


class TestChoiceValidation(BaseModel):
    __test__ = False   # not a pytest test class

    test_id:  str
    valid:    bool = True
    warnings: list[str] = Field(default_factory=list)

    # ── Set when another test fits the data better ──
    suggested_alternative: TestId | None = None
