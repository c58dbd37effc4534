from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from loguru import logger

from . import overrides, schemas
from .adjust_operation import run_adjust
from .pipeline import evaluate_pipeline
from .sensitivity import run_sensitivity


class SimulationService:
    def __init__(self) -> None:
        self._scenario_store: Dict[str, schemas.PlantInputs] = {}
        self._counter = 0

    def evaluate(self, inputs: schemas.PlantInputs) -> schemas.PlantOutputs:
        return evaluate_pipeline(inputs)

    def edit_override(self, request: schemas.OverrideEditRequest) -> schemas.PlantInputs:
        return overrides.edit_inlet(request.inputs, request.stage, request.species, request.value)

    def clear_override(self, request: schemas.OverrideClearRequest) -> schemas.PlantInputs:
        return overrides.clear_override(request.inputs, request.stage)

    def sensitivity(self, request: schemas.SensitivityRequest) -> schemas.SensitivityResult:
        return run_sensitivity(request)

    def adjust(self, request: schemas.AdjustRequest) -> schemas.PlantOutputs:
        return run_adjust(request)

    def create_scenario(self, scenario: schemas.ScenarioCreateRequest) -> str:
        self._counter += 1
        scenario_id = f"scn-{int(datetime.now(timezone.utc).timestamp())}-{self._counter}"
        self._scenario_store[scenario_id] = scenario.inputs
        logger.info("Scenario '{}' stored as {}", scenario.name, scenario_id)
        return scenario_id

    def get_scenario(self, scenario_id: str) -> schemas.PlantInputs:
        inputs = self._scenario_store.get(scenario_id)
        if inputs is None:
            raise KeyError(f"Scenario {scenario_id} not found")
        return inputs

    def merge_scenario(self, scenario_id: str, record: Dict[str, Any]) -> schemas.PlantInputs:
        """Merge a saved record over a stored scenario and keep the result."""
        base = self.get_scenario(scenario_id).model_dump()
        merged = schemas.PlantInputs.model_validate(schemas.deep_merge(base, record))
        self._scenario_store[scenario_id] = merged
        return merged

    def run_scenario(self, scenario_id: str) -> schemas.PlantOutputs:
        return self.evaluate(self.get_scenario(scenario_id))
