from fastapi import APIRouter, Depends, Query

from cursorcalc.core.config import get_settings
from cursorcalc.core.exceptions import ExpressionTooLongError
from cursorcalc.models.calculator import CalculatorResult
from cursorcalc.services.evaluator import NumericEvaluator

router = APIRouter(tags=["calculator"])


def get_evaluator() -> NumericEvaluator:
    return NumericEvaluator()


@router.get("/calc", response_model=CalculatorResult)
async def evaluate_calculator_expression(
    query: str = Query(..., description="Arithmetic expression to evaluate."),
    evaluator: NumericEvaluator = Depends(get_evaluator),
) -> CalculatorResult:
    limit = get_settings().max_expression_length
    if len(query.strip()) > limit:
        raise ExpressionTooLongError(f"Expression exceeds {limit} characters.")

    result = evaluator.evaluate(query).unwrap()
    return CalculatorResult(expression=query, result=result)
