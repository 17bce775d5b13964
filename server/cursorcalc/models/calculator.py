from pydantic import BaseModel, Field


class CalculatorResult(BaseModel):
    expression: str = Field(..., description="The arithmetic expression that was evaluated.")
    result: str = Field(..., description="The evaluated result as a canonical decimal string.")
