"""
FILE: Schemas/classifier.py
----------------------------
Pydantic output schema for the variable classifier.
SuggestedVars is the advisory contract returned by suggest_variables();
run_test() re-validates feasibility on its own.
"""

from pydantic import BaseModel, Field


class SuggestedVariable(BaseModel):
    name:  str
    label: str
    role:  str      # "outcome" | "group" | "predictor" | "variable" | "row variable" | ...


class SuggestedVars(BaseModel):
    test_id:     str
    description: str                       # plain English: what will be analysed and how
    variables:   list[SuggestedVariable] = Field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [v.name for v in self.variables]
