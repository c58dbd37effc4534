"""
Sensitivity analysis: parameter sweep runner.

Sweeps a single plant input across N values, re-evaluates the plant at
each point, and collects KPIs or stream values for charting.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from loguru import logger

from . import schemas
from .adjust_operation import clone_with_value, extract_output
from .pipeline import evaluate_pipeline


def run_sensitivity(request: schemas.SensitivityRequest) -> schemas.SensitivityResult:
    """
    Sweep ``variable_path`` and collect ``outputs`` at every point.

    A bad input path or an unreadable output gives ``None`` entries and a
    warning rather than an error.
    """
    warnings: List[str] = []

    n = max(request.n_points, 2)
    param_values = [
        request.variable_min + i * (request.variable_max - request.variable_min) / (n - 1)
        for i in range(n)
    ]
    results: Dict[str, List[Optional[float]]] = {name: [] for name in request.outputs}

    for idx, val in enumerate(param_values):
        try:
            inputs = clone_with_value(request.inputs, request.variable_path, val)
        except KeyError as exc:
            msg = str(exc).strip("'\"")
            logger.warning("Sensitivity: {}", msg)
            warnings.append(msg)
            for name in request.outputs:
                results[name] = [None] * n
            break

        outputs = evaluate_pipeline(inputs)
        for name in request.outputs:
            value = extract_output(outputs, name)
            if value is None and idx == 0:
                warnings.append(f"Output '{name}' not found in results")
            results[name].append(value)

    return schemas.SensitivityResult(
        parameter_values=param_values,
        results=results,
        warnings=warnings,
    )
