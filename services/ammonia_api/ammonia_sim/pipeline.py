"""
Fixed-sequence plant solver.

The front end is a straight chain, so there is no graph search and no tear
stream: every evaluation rebuilds the stage list from the inputs and runs
it once, front to back.

  feed -> primary reformer -> secondary reformer (+ air) -> HTS -> LTS
       [-> condensate -> absorber -> stripper]  -> methanator -> converter

Override anchors at the methanator and converter inlets replace the inlet
the stage would otherwise receive.  The upstream outlet is left as it was
computed; the stage outlet (computed from the override) flows on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
from loguru import logger

from . import kpi, schemas
from .feed import FeedVectors, assemble_feed
from .species import ELEMENTS, element_totals, make_vector, vector_to_dict, zero_vector
from .stream import Stream, derive_stream
from .unit_operations import UNIT_OP_REGISTRY, UnitOpBase

# Stages whose inlet can be pinned by an override anchor -> PlantInputs field
OVERRIDE_FIELDS: Dict[str, str] = {
    "methanator": "methanator_inlet_override",
    "ammonia_reactor": "ammonia_reactor_inlet_override",
}

_BALANCE_TOL = 1e-9


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass
class StageSpec:
    """One node of the chain and where each of its inlets comes from."""

    id: str
    name: str
    type: str
    params: Dict[str, float]
    # port -> (upstream stage id, upstream port); "feed" names a feed vector
    sources: Dict[str, Tuple[str, str]]


@dataclass
class StageRun:
    spec: StageSpec
    unit: UnitOpBase
    inlets: Dict[str, np.ndarray]
    outlets: Dict[str, np.ndarray]
    overridden: bool = False
    balance: Dict[str, float] = field(default_factory=dict)

    @property
    def inlet(self) -> np.ndarray:
        return self.inlets["in"]

    @property
    def outlet(self) -> np.ndarray:
        return self.outlets[self.unit.outlet_ports[0]]


@dataclass
class SolverResult:
    feed: FeedVectors
    stages: Dict[str, StageRun]
    warnings: List[str]

    def inlet(self, stage_id: str) -> np.ndarray:
        return self.stages[stage_id].inlet

    def outlet(self, stage_id: str) -> np.ndarray:
        return self.stages[stage_id].outlet


# ---------------------------------------------------------------------------
# Solver
# ---------------------------------------------------------------------------


class PlantSolver:
    """Builds the stage chain for one :class:`PlantInputs` and runs it."""

    def __init__(self, inputs: schemas.PlantInputs) -> None:
        self.inputs = inputs
        self.stage_specs: List[StageSpec] = self._build_stages()

    def _build_stages(self) -> List[StageSpec]:
        c = self.inputs.conversions
        sep = self.inputs.separation

        specs = [
            StageSpec(
                "primary_reformer", "Primary Reformer", "primaryReformer",
                {
                    "ch4_conversion": c.primary_ch4_conversion,
                    "c2h6_conversion": c.primary_c2h6_conversion,
                    "co_conversion": c.primary_co_conversion,
                },
                {"in": ("feed", "primary")},
            ),
            StageSpec(
                "secondary_reformer", "Secondary Reformer", "secondaryReformer",
                {
                    "ch4_conversion": c.secondary_ch4_conversion,
                    "co_conversion": c.secondary_co_conversion,
                    "o2_conversion": c.secondary_o2_conversion,
                },
                {"in": ("primary_reformer", "out"), "air": ("feed", "air")},
            ),
            StageSpec(
                "hts", "HTS Shift", "shiftConverter",
                {"co_conversion": c.hts_co_conversion},
                {"in": ("secondary_reformer", "out")},
            ),
            StageSpec(
                "lts", "LTS Shift", "shiftConverter",
                {"co_conversion": c.lts_co_conversion},
                {"in": ("hts", "out")},
            ),
        ]

        methanator_source = ("lts", "out")
        if sep.enabled:
            specs += [
                StageSpec(
                    "condensate", "Condensate Separator", "condensateSeparator",
                    {"h2o_removal_efficiency": sep.h2o_removal_efficiency},
                    {"in": ("lts", "out")},
                ),
                StageSpec(
                    "absorber", "CO2 Absorber", "absorber",
                    {"target_dry_co2_percent": sep.absorber_target_co2_dry_pct},
                    {"in": ("condensate", "out")},
                ),
                StageSpec(
                    "stripper", "CO2 Stripper", "stripper",
                    {"target_purity_pct": sep.stripper_target_purity_pct},
                    {"in": ("absorber", "bottom")},
                ),
            ]
            methanator_source = ("absorber", "top")

        specs += [
            StageSpec(
                "methanator", "Methanator", "methanator",
                {
                    "co_conversion": c.methanator_co_conversion,
                    "co2_conversion": c.methanator_co2_conversion,
                },
                {"in": methanator_source},
            ),
            StageSpec(
                "ammonia_reactor", "Ammonia Reactor", "ammoniaReactor",
                {"n2_conversion": c.ammonia_reactor_n2_conversion},
                {"in": ("methanator", "out")},
            ),
        ]
        return specs

    # ------------------------------------------------------------------
    # Solve
    # ------------------------------------------------------------------

    def solve(self) -> SolverResult:
        feed = assemble_feed(self.inputs.feed)
        feed_ports = {"primary": feed.primary_inlet, "air": feed.air}

        runs: Dict[str, StageRun] = {}
        warnings: List[str] = []

        for spec in self.stage_specs:
            inlets: Dict[str, np.ndarray] = {}
            for port, (source, source_port) in spec.sources.items():
                if source == "feed":
                    inlets[port] = feed_ports[source_port].copy()
                else:
                    inlets[port] = runs[source].outlets[source_port].copy()

            override = self._override_for(spec.id)
            if override is not None:
                logger.debug("Stage '{}' inlet replaced by override anchor", spec.id)
                inlets["in"] = override

            unit = UNIT_OP_REGISTRY[spec.type](id=spec.id, name=spec.name, params=spec.params)
            outlets = unit.calculate(inlets)
            unit.check_outlets(outlets)

            run = StageRun(
                spec=spec,
                unit=unit,
                inlets=inlets,
                outlets=outlets,
                overridden=override is not None,
            )
            run.balance = self._element_balance(run)
            warnings.extend(unit.warnings)
            runs[spec.id] = run

            logger.debug(
                "{}: {:.4f} -> {:.4f} kgmol/hr",
                spec.name, float(run.inlet.sum()), float(run.outlet.sum()),
            )

        return SolverResult(feed=feed, stages=runs, warnings=warnings)

    def _override_for(self, stage_id: str) -> Optional[np.ndarray]:
        field_name = OVERRIDE_FIELDS.get(stage_id)
        if field_name is None:
            return None
        value = getattr(self.inputs, field_name)
        if value is None:
            return None
        return make_vector(value)

    @staticmethod
    def _element_balance(run: StageRun) -> Dict[str, float]:
        """Atom flow out minus atom flow in, per element."""
        total_in = zero_vector()
        for vec in run.inlets.values():
            total_in = total_in + vec
        total_out = zero_vector()
        for vec in run.outlets.values():
            total_out = total_out + vec
        before = element_totals(total_in)
        after = element_totals(total_out)
        return {el: after[el] - before[el] for el in ELEMENTS}


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def stream_result(stream: Stream) -> schemas.StreamResult:
    return schemas.StreamResult(
        moles=vector_to_dict(stream.moles),
        total_moles=stream.total_moles,
        total_volume_nm3_per_h=stream.total_volume,
        mass_flow_kg_per_h=stream.mass_flow,
        mole_fractions=vector_to_dict(stream.mole_fractions),
        dry_mole_fractions=vector_to_dict(stream.dry_mole_fractions),
    )


def compute_kpis(inputs: schemas.PlantInputs, result: SolverResult) -> schemas.KPIResult:
    feed = inputs.feed
    pg_carbon = kpi.process_gas_carbon_number(feed.process_gas.composition_pct)
    converter_in = derive_stream(result.inlet("ammonia_reactor"))
    converter_out = derive_stream(result.outlet("ammonia_reactor"))

    return schemas.KPIResult(
        process_gas_carbon_number=pg_carbon,
        feed_carbon_number=kpi.feed_carbon_number(derive_stream(result.feed.primary_inlet)),
        steam_to_carbon_ratio=kpi.steam_to_carbon_ratio(
            feed.steam_t_per_h, pg_carbon, feed.process_gas.flow_nm3_per_h
        ),
        front_end_load=kpi.front_end_load(
            feed.process_gas.flow_nm3_per_h,
            pg_carbon,
            inputs.design.process_gas_flow_nm3_per_h,
            inputs.design.carbon_number,
        ),
        hn_ratio=kpi.hn_ratio(converter_in),
        gas_to_air_ratio=kpi.gas_to_air_ratio(
            feed.process_gas.flow_nm3_per_h, feed.air.flow_nm3_per_h
        ),
        ammonia_production_t_per_day=kpi.ammonia_production_t_per_day(converter_in, converter_out),
        realized_o2_conversion=result.stages["secondary_reformer"].unit.extra.get(
            "realized_o2_conversion", 0.0
        ),
    )


def evaluate_pipeline(inputs: schemas.PlantInputs) -> schemas.PlantOutputs:
    """
    Evaluate the whole plant for one set of inputs.

    Pure: the same inputs always give the same outputs and nothing is
    cached between calls.
    """
    result = PlantSolver(inputs).solve()

    stages: List[schemas.StageResult] = []
    balance: Dict[str, Dict[str, float]] = {}
    for stage_id, run in result.stages.items():
        operating = getattr(inputs.operating, stage_id, None)
        main_port = run.unit.outlet_ports[0]
        stages.append(
            schemas.StageResult(
                id=stage_id,
                name=run.spec.name,
                type=run.spec.type,
                inlet=stream_result(derive_stream(run.inlet)),
                outlet=stream_result(derive_stream(run.outlet)),
                extra_outlets={
                    port: stream_result(derive_stream(vec))
                    for port, vec in run.outlets.items()
                    if port != main_port
                },
                inlet_overridden=run.overridden,
                operating=operating,
                delta_t_c=operating.delta_t_c if operating is not None else None,
                delta_p_kg_cm2=operating.delta_p_kg_cm2 if operating is not None else None,
                extra=dict(run.unit.extra),
                warnings=list(run.unit.warnings),
            )
        )
        balance[stage_id] = run.balance

    max_imbalance = max(
        (abs(v) for per_stage in balance.values() for v in per_stage.values()),
        default=0.0,
    )
    outputs = schemas.PlantOutputs(
        status="ok" if not result.warnings else "warnings",
        stages=stages,
        air=stream_result(derive_stream(result.feed.air)),
        kpis=compute_kpis(inputs, result),
        warnings=list(result.warnings),
        diagnostics={
            "element_balance": balance,
            "max_element_imbalance": max_imbalance,
            "balance_closed": bool(max_imbalance <= _BALANCE_TOL * max(1.0, _feed_scale(result))),
        },
    )
    logger.info(
        "Plant evaluated: {} stages, H/N {:.4f}, {} warning(s)",
        len(stages), outputs.kpis.hn_ratio, len(outputs.warnings),
    )
    return outputs


def _feed_scale(result: SolverResult) -> float:
    return float(np.abs(result.feed.primary_inlet).sum() + np.abs(result.feed.air).sum())
