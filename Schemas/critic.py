"""
FILE: Schemas/critic.py
------------------------
Pydantic output schema for the result critic.
Checks whether a finished result's table carries the statistics
its narrative claims.
"""

from pydantic import BaseModel, Field


class ResultValidation(BaseModel):
    test_id:    str
    consistent: bool = True
    issues:     list[str] = Field(default_factory=list)

    # ── Summary shown to user ──
    summary_message: str = ""
