"""
Feed assembly: process gas, recycle gas, steam and humid process air.

Gas feeds are specified as dry composition percentages and a total
volumetric flow (Nm³/hr); steam as a mass flow (t/hr).  Everything is
converted to kgmol/hr component vectors here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping

import numpy as np
from loguru import logger

from .species import (
    H2O_MOLAR_MASS,
    MOLAR_VOLUME_NM3,
    Species,
    coerce_flow,
    resolve_species,
    zero_vector,
)

# Standard atmosphere, hPa
ATMOSPHERIC_PRESSURE_HPA = 1013.25

# Magnus-type saturation correlation coefficients (T in °C, P in hPa)
_MAGNUS_A = 6.112
_MAGNUS_B = 17.67
_MAGNUS_C = 243.5


@dataclass(frozen=True)
class FeedVectors:
    process_gas: np.ndarray
    recycle_gas: np.ndarray
    steam: np.ndarray
    air: np.ndarray

    @property
    def primary_inlet(self) -> np.ndarray:
        return self.process_gas + self.recycle_gas + self.steam


def gas_vector(composition_pct: Mapping[str, object], flow_nm3_per_h) -> np.ndarray:
    """Component vector (kgmol/hr) for a gas given as mol% and Nm³/hr."""
    total_moles = coerce_flow(flow_nm3_per_h) / MOLAR_VOLUME_NM3
    vec = zero_vector()
    for key, pct in composition_pct.items():
        vec[resolve_species(key)] = coerce_flow(pct) / 100.0 * total_moles
    return vec


def steam_vector(steam_t_per_h) -> np.ndarray:
    vec = zero_vector()
    vec[Species.H2O] = coerce_flow(steam_t_per_h) * 1000.0 / H2O_MOLAR_MASS
    return vec


def saturation_pressure_hpa(temperature_c: float) -> float:
    """Saturation vapour pressure of water over liquid (Magnus form)."""
    return _MAGNUS_A * math.exp(_MAGNUS_B * temperature_c / (temperature_c + _MAGNUS_C))


def water_vapour_mole_fraction(relative_humidity_pct: float, temperature_c: float) -> float:
    p_vapour = relative_humidity_pct / 100.0 * saturation_pressure_hpa(temperature_c)
    return p_vapour / ATMOSPHERIC_PRESSURE_HPA


def humid_air_vector(
    composition_pct: Mapping[str, object],
    flow_nm3_per_h,
    relative_humidity_pct,
    ambient_temperature_c,
) -> np.ndarray:
    """
    Air vector including its moisture.

    ``flow_nm3_per_h`` and the composition describe the dry air; water is
    added on top so that it makes up the vapour mole fraction of the wet
    gas.  A vapour fraction of 1 or more is passed through unclamped.
    """
    vec = gas_vector(composition_pct, flow_nm3_per_h)
    dry_total = float(vec.sum()) - float(vec[Species.H2O])

    y_h2o = water_vapour_mole_fraction(
        coerce_flow(relative_humidity_pct), coerce_flow(ambient_temperature_c)
    )
    if y_h2o >= 1:
        logger.warning(
            "Air vapour mole fraction {:.4f} >= 1; humid air flow is not physical",
            y_h2o,
        )
    if y_h2o == 1:
        vec[Species.H2O] = math.inf
    else:
        vec[Species.H2O] += dry_total * y_h2o / (1 - y_h2o)
    return vec


def assemble_feed(feed) -> FeedVectors:
    """Build all feed vectors from a :class:`~.schemas.PlantFeedSpec`."""
    air = feed.air
    vectors = FeedVectors(
        process_gas=gas_vector(feed.process_gas.composition_pct, feed.process_gas.flow_nm3_per_h),
        recycle_gas=gas_vector(feed.recycle_gas.composition_pct, feed.recycle_gas.flow_nm3_per_h),
        steam=steam_vector(feed.steam_t_per_h),
        air=humid_air_vector(
            air.composition_pct,
            air.flow_nm3_per_h,
            air.relative_humidity_pct,
            air.ambient_temperature_c,
        ),
    )
    logger.debug(
        "Feed assembled: primary inlet {:.3f} kgmol/hr, air {:.3f} kgmol/hr",
        float(vectors.primary_inlet.sum()),
        float(vectors.air.sum()),
    )
    return vectors
