from __future__ import annotations

from fastapi import FastAPI, HTTPException

from . import schemas
from .simulation_service import SimulationService

app = FastAPI(title="Ammonia Plant Mass Balance API", version="0.1.0")
service = SimulationService()


@app.get("/healthz")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/defaults", response_model=schemas.PlantInputs)
def default_inputs() -> schemas.PlantInputs:
    return schemas.PlantInputs()


@app.post("/evaluate", response_model=schemas.PlantOutputs)
def evaluate(inputs: schemas.PlantInputs) -> schemas.PlantOutputs:
    return service.evaluate(inputs)


@app.post("/overrides/edit", response_model=schemas.PlantInputs)
def edit_override(request: schemas.OverrideEditRequest) -> schemas.PlantInputs:
    try:
        return service.edit_override(request)
    except (KeyError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc).strip("'\"")) from exc


@app.post("/overrides/clear", response_model=schemas.PlantInputs)
def clear_override(request: schemas.OverrideClearRequest) -> schemas.PlantInputs:
    try:
        return service.clear_override(request)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.post("/sensitivity", response_model=schemas.SensitivityResult)
def sensitivity(request: schemas.SensitivityRequest) -> schemas.SensitivityResult:
    return service.sensitivity(request)


@app.post("/adjust", response_model=schemas.PlantOutputs)
def adjust(request: schemas.AdjustRequest) -> schemas.PlantOutputs:
    try:
        return service.adjust(request)
    except KeyError as exc:
        raise HTTPException(status_code=422, detail=str(exc).strip("'\"")) from exc


@app.post("/scenarios", response_model=dict)
def create_scenario(request: schemas.ScenarioCreateRequest) -> dict[str, str]:
    scenario_id = service.create_scenario(request)
    return {"scenario_id": scenario_id}


@app.get("/scenarios/{scenario_id}", response_model=schemas.PlantInputs)
def get_scenario(scenario_id: str) -> schemas.PlantInputs:
    try:
        return service.get_scenario(scenario_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc).strip("'\"")) from exc


@app.post("/scenarios/{scenario_id}/merge", response_model=schemas.PlantInputs)
def merge_scenario(scenario_id: str, request: schemas.ScenarioMergeRequest) -> schemas.PlantInputs:
    try:
        return service.merge_scenario(scenario_id, request.record)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc).strip("'\"")) from exc


@app.post("/scenarios/{scenario_id}/run", response_model=schemas.ScenarioRunResponse)
def run_scenario(scenario_id: str) -> schemas.ScenarioRunResponse:
    try:
        result = service.run_scenario(scenario_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc).strip("'\"")) from exc
    return schemas.ScenarioRunResponse(scenario_id=scenario_id, result=result)
