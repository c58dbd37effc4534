"""
Plant key performance indicators.

All ratios return 0 instead of raising when their denominator is zero or
otherwise meaningless.
"""

from __future__ import annotations

from typing import Mapping

from .species import H2O_MOLAR_MASS, MOLAR_VOLUME_NM3, MOLECULAR_WEIGHTS, Species, coerce_flow, make_vector
from .stream import Stream

# Carbon atoms per dry carbon-bearing species
_CARBON_WEIGHTS = {
    Species.CH4: 1,
    Species.C2H6: 2,
    Species.CO2: 1,
    Species.CO: 1,
}


def carbon_number(dry_fractions) -> float:
    """1·CH4 + 2·C2H6 + 1·CO2 + 1·CO over dry mole fractions."""
    vec = make_vector(dry_fractions) if isinstance(dry_fractions, Mapping) else dry_fractions
    return float(sum(w * vec[s] for s, w in _CARBON_WEIGHTS.items()))


def process_gas_carbon_number(composition_pct: Mapping[str, object]) -> float:
    """Carbon number of a gas given by its dry composition in mol%."""
    return carbon_number({k: coerce_flow(v) / 100.0 for k, v in composition_pct.items()})


def feed_carbon_number(stream: Stream) -> float:
    """Carbon number of a (wet) stream, on its dry basis."""
    if stream.dry_total_moles <= 0:
        return 0.0
    return carbon_number(stream.dry_mole_fractions)


def steam_to_carbon_ratio(steam_t_per_h, carbon_no: float, process_gas_flow_nm3_per_h) -> float:
    """Steam kgmol/hr per kgatom/hr of carbon in the process gas."""
    flow = coerce_flow(process_gas_flow_nm3_per_h)
    if carbon_no <= 0 or flow <= 0:
        return 0.0
    steam_moles = coerce_flow(steam_t_per_h) * 1000.0 / H2O_MOLAR_MASS
    carbon_moles = carbon_no * flow / MOLAR_VOLUME_NM3
    return steam_moles / carbon_moles


def front_end_load(
    process_gas_flow_nm3_per_h,
    carbon_no: float,
    design_flow_nm3_per_h,
    design_carbon_number,
) -> float:
    design_load = coerce_flow(design_flow_nm3_per_h) * coerce_flow(design_carbon_number)
    if design_load <= 0:
        return 0.0
    return coerce_flow(process_gas_flow_nm3_per_h) * carbon_no / design_load


def hn_ratio(converter_inlet: Stream) -> float:
    n2 = converter_inlet[Species.N2]
    if n2 == 0:
        return 0.0
    return converter_inlet[Species.H2] / n2


def gas_to_air_ratio(process_gas_flow_nm3_per_h, air_flow_nm3_per_h) -> float:
    air = coerce_flow(air_flow_nm3_per_h)
    if air <= 0:
        return 0.0
    return coerce_flow(process_gas_flow_nm3_per_h) / air


def ammonia_production_t_per_day(converter_inlet: Stream, converter_outlet: Stream) -> float:
    formed = converter_outlet[Species.NH3] - converter_inlet[Species.NH3]
    return formed * float(MOLECULAR_WEIGHTS[Species.NH3]) * 24.0 / 1000.0
