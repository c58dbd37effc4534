from __future__ import annotations

from typing import Annotated, Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from .species import coerce_flow, make_vector, vector_to_dict

# Malformed numbers at the boundary are read as 0 rather than rejected
Num = Annotated[float, BeforeValidator(coerce_flow)]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class GasFeedSpec(_Frozen):
    composition_pct: Dict[str, Num] = Field(default_factory=dict)  # dry mol%
    flow_nm3_per_h: Num = 0.0

    @field_validator("composition_pct")
    @classmethod
    def _known_species(cls, value: Dict[str, float]) -> Dict[str, float]:
        try:
            make_vector(value)
        except KeyError as exc:
            raise ValueError(str(exc)) from exc
        return value


class AirFeedSpec(GasFeedSpec):
    relative_humidity_pct: Num = 60.0
    ambient_temperature_c: Num = 30.0


def _default_process_gas() -> GasFeedSpec:
    return GasFeedSpec(
        composition_pct={"CH4": 95.0, "C2H6": 2.5, "CO2": 0.5, "H2": 2.0},
        flow_nm3_per_h=100000.0,
    )


def _default_recycle_gas() -> GasFeedSpec:
    return GasFeedSpec(
        composition_pct={"H2": 74.0, "N2": 24.7, "CH4": 1.0, "AR": 0.3},
        flow_nm3_per_h=5000.0,
    )


def _default_air() -> AirFeedSpec:
    return AirFeedSpec(
        composition_pct={"N2": 78.08, "O2": 20.92, "AR": 0.97, "CO2": 0.03},
        flow_nm3_per_h=140000.0,
    )


class PlantFeedSpec(_Frozen):
    process_gas: GasFeedSpec = Field(default_factory=_default_process_gas)
    recycle_gas: GasFeedSpec = Field(default_factory=_default_recycle_gas)
    steam_t_per_h: Num = 250.0
    air: AirFeedSpec = Field(default_factory=_default_air)


class ConversionParameters(_Frozen):
    """Reaction extents; nominally in [0, 1] but never clamped."""

    primary_ch4_conversion: Num = 0.85
    primary_c2h6_conversion: Num = 1.0
    primary_co_conversion: Num = 0.5
    secondary_ch4_conversion: Num = 0.95
    secondary_co_conversion: Num = 0.3
    secondary_o2_conversion: Num = 1.0
    hts_co_conversion: Num = 0.90
    lts_co_conversion: Num = 0.95
    methanator_co_conversion: Num = 0.9999
    methanator_co2_conversion: Num = 0.9999
    ammonia_reactor_n2_conversion: Num = 0.15


class OperatingCondition(_Frozen):
    inlet_temperature_c: Num = 0.0
    outlet_temperature_c: Num = 0.0
    inlet_pressure_kg_cm2g: Num = 0.0
    outlet_pressure_kg_cm2g: Num = 0.0

    @property
    def delta_t_c(self) -> float:
        return self.outlet_temperature_c - self.inlet_temperature_c

    @property
    def delta_p_kg_cm2(self) -> float:
        return self.outlet_pressure_kg_cm2g - self.inlet_pressure_kg_cm2g


def _op(tin: float, tout: float, pin: float, pout: float) -> OperatingCondition:
    return OperatingCondition(
        inlet_temperature_c=tin,
        outlet_temperature_c=tout,
        inlet_pressure_kg_cm2g=pin,
        outlet_pressure_kg_cm2g=pout,
    )


class OperatingConditions(_Frozen):
    """Per-stage temperatures and pressures; reported, never balanced."""

    primary_reformer: OperatingCondition = Field(default_factory=lambda: _op(520, 810, 35.0, 32.5))
    secondary_reformer: OperatingCondition = Field(default_factory=lambda: _op(810, 980, 32.0, 31.0))
    hts: OperatingCondition = Field(default_factory=lambda: _op(360, 420, 30.5, 29.8))
    lts: OperatingCondition = Field(default_factory=lambda: _op(200, 225, 29.5, 28.5))
    methanator: OperatingCondition = Field(default_factory=lambda: _op(280, 320, 27.5, 26.8))
    ammonia_reactor: OperatingCondition = Field(default_factory=lambda: _op(380, 450, 150.0, 145.0))


class DesignBasis(_Frozen):
    process_gas_flow_nm3_per_h: Num = 110000.0
    carbon_number: Num = 1.05


class SeparationSettings(_Frozen):
    """Condensate / CO2 removal train between LTS and methanator."""

    enabled: bool = True
    h2o_removal_efficiency: Num = 1.0
    absorber_target_co2_dry_pct: Num = 0.1
    stripper_target_purity_pct: Num = 99.0


class PlantInputs(_Frozen):
    feed: PlantFeedSpec = Field(default_factory=PlantFeedSpec)
    conversions: ConversionParameters = Field(default_factory=ConversionParameters)
    operating: OperatingConditions = Field(default_factory=OperatingConditions)
    design: DesignBasis = Field(default_factory=DesignBasis)
    separation: SeparationSettings = Field(default_factory=SeparationSettings)
    methanator_inlet_override: Optional[Dict[str, float]] = None
    ammonia_reactor_inlet_override: Optional[Dict[str, float]] = None

    @field_validator("methanator_inlet_override", "ammonia_reactor_inlet_override", mode="before")
    @classmethod
    def _complete_override(cls, value: Any) -> Optional[Dict[str, float]]:
        if value is None:
            return None
        if not isinstance(value, Mapping):
            raise ValueError("override must map species names to flows")
        try:
            return vector_to_dict(make_vector(value))
        except KeyError as exc:
            raise ValueError(str(exc)) from exc

    @classmethod
    def merge_saved(cls, record: Dict[str, Any]) -> "PlantInputs":
        """Merge a persisted (possibly partial) record over the defaults."""
        merged = deep_merge(cls().model_dump(), record or {})
        return cls.model_validate(merged)


def deep_merge(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for key, value in patch.items():
        # composition tables are replaced wholesale, not merged per species
        if (
            isinstance(value, dict)
            and isinstance(out.get(key), dict)
            and key != "composition_pct"
            and not key.endswith("_override")
        ):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = value
    return out


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


class StreamResult(BaseModel):
    moles: Dict[str, float] = Field(default_factory=dict)  # kgmol/hr
    total_moles: float = 0.0
    total_volume_nm3_per_h: float = 0.0
    mass_flow_kg_per_h: float = 0.0
    mole_fractions: Dict[str, float] = Field(default_factory=dict)
    dry_mole_fractions: Dict[str, float] = Field(default_factory=dict)


class StageResult(BaseModel):
    id: str
    name: str
    type: str
    inlet: StreamResult
    outlet: StreamResult
    extra_outlets: Dict[str, StreamResult] = Field(default_factory=dict)
    inlet_overridden: bool = False
    operating: Optional[OperatingCondition] = None
    delta_t_c: Optional[float] = None
    delta_p_kg_cm2: Optional[float] = None
    extra: Dict[str, float] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)


class KPIResult(BaseModel):
    process_gas_carbon_number: float = 0.0
    feed_carbon_number: float = 0.0
    steam_to_carbon_ratio: float = 0.0
    front_end_load: float = 0.0
    hn_ratio: float = 0.0
    gas_to_air_ratio: float = 0.0
    ammonia_production_t_per_day: float = 0.0
    realized_o2_conversion: float = 0.0


class PlantOutputs(BaseModel):
    status: str = "ok"
    stages: List[StageResult]
    air: StreamResult
    kpis: KPIResult
    warnings: List[str] = Field(default_factory=list)
    diagnostics: Dict[str, Any] = Field(default_factory=dict)

    def stage(self, stage_id: str) -> StageResult:
        for s in self.stages:
            if s.id == stage_id:
                return s
        raise KeyError(f"Stage '{stage_id}' not in results")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class OverrideEditRequest(BaseModel):
    inputs: PlantInputs = Field(default_factory=PlantInputs)
    stage: str
    species: str
    value: Num


class OverrideClearRequest(BaseModel):
    inputs: PlantInputs = Field(default_factory=PlantInputs)
    stage: str


class SensitivityRequest(BaseModel):
    inputs: PlantInputs = Field(default_factory=PlantInputs)
    variable_path: str
    variable_min: float
    variable_max: float
    n_points: int = 10
    outputs: List[str] = Field(default_factory=lambda: ["hn_ratio"])


class SensitivityResult(BaseModel):
    parameter_values: List[float]
    results: Dict[str, List[Optional[float]]]
    warnings: List[str] = Field(default_factory=list)


class AdjustRequest(BaseModel):
    inputs: PlantInputs = Field(default_factory=PlantInputs)
    variable_path: str = "feed.air.flow_nm3_per_h"
    variable_min: float
    variable_max: float
    target_kpi: str = "hn_ratio"
    target_value: float = 3.0
    tolerance: float = 1e-6
    max_iterations: int = 100


class ScenarioCreateRequest(BaseModel):
    name: str
    inputs: PlantInputs = Field(default_factory=PlantInputs)
    description: Optional[str] = None


class ScenarioMergeRequest(BaseModel):
    record: Dict[str, Any] = Field(default_factory=dict)


class ScenarioRunResponse(BaseModel):
    scenario_id: str
    result: PlantOutputs
