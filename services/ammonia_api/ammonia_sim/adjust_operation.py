"""
Adjust operation: vary one plant input until a result hits a target.

The canonical use is trimming process air until the converter inlet H/N
ratio reaches 3.0.  Root finding is Brent's method; every trial is a full
pipeline evaluation.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from loguru import logger
from pydantic import ValidationError
from scipy.optimize import brentq

from . import schemas
from .pipeline import evaluate_pipeline
from .species import Species

_STREAM_SCALARS = ("total_moles", "total_volume_nm3_per_h", "mass_flow_kg_per_h")


# ---------------------------------------------------------------------------
# Input paths and output extraction
# ---------------------------------------------------------------------------


def clone_with_value(
    inputs: schemas.PlantInputs,
    path: str,
    value: float,
) -> schemas.PlantInputs:
    """Copy ``inputs`` with the field at dotted ``path`` set to ``value``.

    Raises KeyError when the path does not name an existing numeric field
    or the value is not accepted there.
    """
    data = inputs.model_dump()
    keys = path.split(".")
    node: Dict[str, Any] = data
    for key in keys[:-1]:
        child = node.get(key) if isinstance(node, dict) else None
        if not isinstance(child, dict):
            raise KeyError(f"Input path '{path}' not found")
        node = child
    # composition entries may be added, anything else must already exist
    if keys[-1] not in node and (len(keys) < 2 or keys[-2] != "composition_pct"):
        raise KeyError(f"Input path '{path}' not found")
    node[keys[-1]] = value
    try:
        return schemas.PlantInputs.model_validate(data)
    except ValidationError as exc:
        raise KeyError(f"Input path '{path}' cannot be set: {exc.errors()[0]['msg']}") from exc


def extract_output(outputs: schemas.PlantOutputs, name: str) -> Optional[float]:
    """
    Read a named result.

    ``name`` is either a KPI field (``hn_ratio``) or
    ``<stage>.<inlet|outlet>.<item>`` where item is a species (wet mole
    fraction) or one of the stream totals.
    """
    if name in schemas.KPIResult.model_fields:
        return getattr(outputs.kpis, name)

    parts = name.split(".")
    if len(parts) != 3 or parts[1] not in ("inlet", "outlet"):
        return None
    try:
        stage = outputs.stage(parts[0])
    except KeyError:
        return None
    stream = getattr(stage, parts[1])
    item = parts[2]
    if item.upper() in Species.__members__:
        return stream.mole_fractions.get(item.upper())
    if item in _STREAM_SCALARS:
        return getattr(stream, item)
    return None


# ---------------------------------------------------------------------------
# Adjust solver
# ---------------------------------------------------------------------------


def run_adjust(request: schemas.AdjustRequest) -> schemas.PlantOutputs:
    """
    Run an Adjust operation using Brent's method.

    Varies ``variable_path`` within [min, max] until ``target_kpi`` equals
    ``target_value``.  When the bracket does not contain a root the
    midpoint is evaluated and returned with a warning.
    """
    # fail fast on a bad path or target before any root finding
    baseline = evaluate_pipeline(
        clone_with_value(request.inputs, request.variable_path, request.variable_min)
    )
    if extract_output(baseline, request.target_kpi) is None:
        raise KeyError(f"Target '{request.target_kpi}' not found in results")

    def _objective(value: float) -> float:
        outputs = evaluate_pipeline(clone_with_value(request.inputs, request.variable_path, value))
        actual = extract_output(outputs, request.target_kpi)
        if actual is None:
            raise ValueError(f"Could not extract '{request.target_kpi}' from results")
        return actual - request.target_value

    try:
        optimal_value = brentq(
            _objective,
            request.variable_min,
            request.variable_max,
            xtol=request.tolerance,
            maxiter=request.max_iterations,
        )
    except (ValueError, RuntimeError) as exc:
        # Brent's method requires f(a) and f(b) to have opposite signs
        msg = (
            f"Adjust failed: {exc}. Target may not be achievable within "
            f"[{request.variable_min}, {request.variable_max}]"
        )
        logger.warning(msg)
        mid = (request.variable_min + request.variable_max) / 2.0
        result = evaluate_pipeline(clone_with_value(request.inputs, request.variable_path, mid))
        result.warnings.append(msg)
        result.diagnostics["adjust"] = {
            "variable_path": request.variable_path,
            "converged": False,
            "converged_value": None,
            "evaluated_value": mid,
        }
        return result

    logger.info(
        "Adjust converged: {} = {:.6g} gives {} = {}",
        request.variable_path, optimal_value, request.target_kpi, request.target_value,
    )
    result = evaluate_pipeline(clone_with_value(request.inputs, request.variable_path, optimal_value))
    result.diagnostics["adjust"] = {
        "variable_path": request.variable_path,
        "converged": True,
        "converged_value": optimal_value,
        "target_kpi": request.target_kpi,
        "target_value": request.target_value,
        "achieved_value": extract_output(result, request.target_kpi),
    }
    return result
