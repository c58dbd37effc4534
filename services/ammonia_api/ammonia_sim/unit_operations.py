"""
Stoichiometric unit operation models for the ammonia front end.

Each stage is a pure function of an inlet component vector and its
conversion extents and returns a new outlet vector.  The classes at the
bottom of the module wrap those functions behind a common port-based
``calculate`` interface so the pipeline solver can run them uniformly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, NamedTuple, Tuple

import numpy as np
from loguru import logger

from .species import DRY_SPECIES, Species, as_vector, zero_vector

AR, C2H6, CH4, CO, CO2, H2, N2, NH3, O2, H2O = tuple(Species)


# ---------------------------------------------------------------------------
# Reactions
# ---------------------------------------------------------------------------


def _steam_reform_ethane(vec: np.ndarray, extent: float) -> None:
    # C2H6 + 2H2O -> 2CO + 5H2
    vec[C2H6] -= extent
    vec[H2O] -= 2 * extent
    vec[CO] += 2 * extent
    vec[H2] += 5 * extent


def _steam_reform_methane(vec: np.ndarray, extent: float) -> None:
    # CH4 + H2O -> CO + 3H2
    vec[CH4] -= extent
    vec[H2O] -= extent
    vec[CO] += extent
    vec[H2] += 3 * extent


def _water_gas_shift(vec: np.ndarray, extent: float) -> None:
    # CO + H2O -> CO2 + H2
    vec[CO] -= extent
    vec[H2O] -= extent
    vec[CO2] += extent
    vec[H2] += extent


# ---------------------------------------------------------------------------
# Reformers
# ---------------------------------------------------------------------------


def primary_reformer(
    inlet,
    ch4_conversion: float,
    c2h6_conversion: float,
    co_conversion: float,
) -> np.ndarray:
    """
    Primary (steam) reformer.

    The ethane and methane extents are both referenced to the stage inlet,
    so the methane reformed does not depend on the ethane step.  The shift
    extent is referenced to the CO present after both reforming steps.
    """
    feed = as_vector(inlet)
    outlet = feed.copy()

    _steam_reform_ethane(outlet, c2h6_conversion * feed[C2H6])
    _steam_reform_methane(outlet, ch4_conversion * feed[CH4])
    _water_gas_shift(outlet, co_conversion * outlet[CO])
    return outlet


class SecondaryReformerResult(NamedTuple):
    outlet: np.ndarray
    h2_required: float
    h2_consumed: float
    o2_consumed: float
    o2_available: float

    @property
    def h2_limited(self) -> bool:
        return self.h2_required > self.h2_consumed

    @property
    def realized_o2_conversion(self) -> float:
        if self.o2_available == 0:
            return 0.0
        return self.o2_consumed / self.o2_available


def run_secondary_reformer(
    inlet,
    air,
    ch4_conversion: float,
    co_conversion: float,
    o2_conversion: float,
) -> SecondaryReformerResult:
    """
    Secondary (autothermal) reformer, with combustion bookkeeping.

    Steps, in order:
      1. mix in the humid air
      2. burn H2 with O2; H2 consumption is capped at the H2 available
      3. reform the methane left after mixing
      4. shift the CO present after step 3
    Steps 3 and 4 use the current quantities, not the stage inlet.
    """
    outlet = as_vector(inlet) + as_vector(air)

    # H2 + 1/2 O2 -> H2O
    o2_available = float(outlet[O2])
    h2_required = 2 * o2_conversion * o2_available
    h2_consumed = min(float(outlet[H2]), h2_required)
    o2_consumed = h2_consumed / 2
    outlet[H2] -= h2_consumed
    outlet[H2O] += h2_consumed
    outlet[O2] -= o2_consumed

    _steam_reform_methane(outlet, ch4_conversion * outlet[CH4])
    _water_gas_shift(outlet, co_conversion * outlet[CO])

    return SecondaryReformerResult(
        outlet=outlet,
        h2_required=h2_required,
        h2_consumed=h2_consumed,
        o2_consumed=o2_consumed,
        o2_available=o2_available,
    )


def secondary_reformer(
    inlet,
    air,
    ch4_conversion: float,
    co_conversion: float,
    o2_conversion: float,
) -> np.ndarray:
    return run_secondary_reformer(
        inlet, air, ch4_conversion, co_conversion, o2_conversion
    ).outlet


# ---------------------------------------------------------------------------
# Shift, methanation and synthesis
# ---------------------------------------------------------------------------


def shift_converter(inlet, co_conversion: float) -> np.ndarray:
    """HTS / LTS shift: CO + H2O -> CO2 + H2 on the inlet CO."""
    feed = as_vector(inlet)
    outlet = feed.copy()
    _water_gas_shift(outlet, co_conversion * feed[CO])
    return outlet


def methanator(inlet, co_conversion: float, co2_conversion: float) -> np.ndarray:
    """
    Methanator.

    Both extents come from the untouched inlet and are applied to one
    outlet, so the order of the two reactions does not matter.  H2 is
    debited by both without a feasibility check.
    """
    feed = as_vector(inlet)
    outlet = feed.copy()

    # CO + 3H2 -> CH4 + H2O
    co_reacted = co_conversion * feed[CO]
    outlet[CO] -= co_reacted
    outlet[H2] -= 3 * co_reacted
    outlet[CH4] += co_reacted
    outlet[H2O] += co_reacted

    # CO2 + 4H2 -> CH4 + 2H2O
    co2_reacted = co2_conversion * feed[CO2]
    outlet[CO2] -= co2_reacted
    outlet[H2] -= 4 * co2_reacted
    outlet[CH4] += co2_reacted
    outlet[H2O] += 2 * co2_reacted
    return outlet


def ammonia_reactor(inlet, n2_conversion: float) -> np.ndarray:
    """Single-pass ammonia converter: N2 + 3H2 -> 2NH3."""
    feed = as_vector(inlet)
    outlet = feed.copy()
    n2_reacted = n2_conversion * feed[N2]
    outlet[N2] -= n2_reacted
    outlet[H2] -= 3 * n2_reacted
    outlet[NH3] += 2 * n2_reacted
    return outlet


# ---------------------------------------------------------------------------
# Separation stubs
# ---------------------------------------------------------------------------


def condensate_separator(inlet, h2o_removal_efficiency: float) -> np.ndarray:
    outlet = as_vector(inlet)
    outlet[H2O] = outlet[H2O] * (1 - h2o_removal_efficiency)
    return outlet


def co2_absorber(inlet, target_dry_co2_percent: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    CO2 absorber reduced to a split on CO2 alone.

    Returns ``(top, bottom)``.  The top gas keeps just enough CO2 to sit at
    the target dry-basis mole percent; the bottom carries only the absorbed
    CO2, every other species is reported as zero there.
    """
    feed = as_vector(inlet)
    top = feed.copy()
    bottom = zero_vector()

    non_co2_dry = sum(float(feed[s]) for s in DRY_SPECIES if s is not CO2)
    target_fraction = target_dry_co2_percent / 100.0
    if target_fraction >= 1:
        co2_retained = float(feed[CO2])
    else:
        co2_retained = target_fraction * non_co2_dry / (1 - target_fraction)

    co2_absorbed = max(0.0, float(feed[CO2]) - co2_retained)
    top[CO2] = min(float(feed[CO2]), co2_retained)
    bottom[CO2] = co2_absorbed
    return top, bottom


def co2_stripper(absorbed, target_purity_pct: float) -> np.ndarray:
    # TODO: regenerate the rich solvent against target_purity_pct; the
    # absorber bottom carries CO2 only, so the product passes through as-is.
    return as_vector(absorbed)


# ---------------------------------------------------------------------------
# Port-based wrappers
# ---------------------------------------------------------------------------


class UnitOpBase(ABC):
    """Abstract base for all stages run by the pipeline solver."""

    inlet_ports: Tuple[str, ...] = ("in",)
    outlet_ports: Tuple[str, ...] = ("out",)

    def __init__(self, id: str, name: str, params: Dict) -> None:
        self.id = id
        self.name = name
        self.params = params
        self.warnings: List[str] = []
        self.extra: Dict[str, float] = {}

    @abstractmethod
    def calculate(self, inlets: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        """
        Calculate outlet vectors from inlet vectors.

        Parameters
        ----------
        inlets : dict mapping port name -> component vector

        Returns
        -------
        dict mapping port name -> component vector (outlets)
        """

    def _get_param(self, key: str, default: float = 0.0) -> float:
        return float(self.params.get(key, default))

    def _first_inlet(self, inlets: Dict[str, np.ndarray]) -> np.ndarray:
        return next(iter(inlets.values()))

    def check_outlets(self, outlets: Dict[str, np.ndarray]) -> None:
        """Record (but never correct) negative species flows."""
        for port, vec in outlets.items():
            for s in Species:
                if vec[s] < 0:
                    msg = (
                        f"{self.name}: {s.name} flow on '{port}' is negative "
                        f"({vec[s]:.6g} kgmol/hr)"
                    )
                    logger.warning(msg)
                    self.warnings.append(msg)


class PrimaryReformerOp(UnitOpBase):
    def calculate(self, inlets):
        return {
            "out": primary_reformer(
                self._first_inlet(inlets),
                self._get_param("ch4_conversion"),
                self._get_param("c2h6_conversion"),
                self._get_param("co_conversion"),
            )
        }


class SecondaryReformerOp(UnitOpBase):
    inlet_ports = ("in", "air")

    def calculate(self, inlets):
        result = run_secondary_reformer(
            inlets["in"],
            inlets.get("air", zero_vector()),
            self._get_param("ch4_conversion"),
            self._get_param("co_conversion"),
            self._get_param("o2_conversion"),
        )
        self.extra = {
            "h2_required": result.h2_required,
            "h2_consumed": result.h2_consumed,
            "o2_consumed": result.o2_consumed,
            "realized_o2_conversion": result.realized_o2_conversion,
        }
        if result.h2_limited:
            msg = (
                f"{self.name}: combustion limited by H2 "
                f"({result.h2_consumed:.6g} of {result.h2_required:.6g} kgmol/hr required)"
            )
            logger.warning(msg)
            self.warnings.append(msg)
        return {"out": result.outlet}


class ShiftConverterOp(UnitOpBase):
    def calculate(self, inlets):
        return {
            "out": shift_converter(
                self._first_inlet(inlets), self._get_param("co_conversion")
            )
        }


class MethanatorOp(UnitOpBase):
    def calculate(self, inlets):
        return {
            "out": methanator(
                self._first_inlet(inlets),
                self._get_param("co_conversion"),
                self._get_param("co2_conversion"),
            )
        }


class AmmoniaReactorOp(UnitOpBase):
    def calculate(self, inlets):
        return {
            "out": ammonia_reactor(
                self._first_inlet(inlets), self._get_param("n2_conversion")
            )
        }


class CondensateSeparatorOp(UnitOpBase):
    outlet_ports = ("out", "water")

    def calculate(self, inlets):
        inlet = self._first_inlet(inlets)
        gas = condensate_separator(inlet, self._get_param("h2o_removal_efficiency"))
        water = zero_vector()
        water[H2O] = inlet[H2O] - gas[H2O]
        return {"out": gas, "water": water}


class AbsorberOp(UnitOpBase):
    outlet_ports = ("top", "bottom")

    def calculate(self, inlets):
        top, bottom = co2_absorber(
            self._first_inlet(inlets),
            self._get_param("target_dry_co2_percent"),
        )
        return {"top": top, "bottom": bottom}


class StripperOp(UnitOpBase):
    def calculate(self, inlets):
        return {
            "out": co2_stripper(
                self._first_inlet(inlets),
                self._get_param("target_purity_pct"),
            )
        }


UNIT_OP_REGISTRY: Dict[str, type] = {
    "primaryReformer": PrimaryReformerOp,
    "secondaryReformer": SecondaryReformerOp,
    "shiftConverter": ShiftConverterOp,
    "methanator": MethanatorOp,
    "ammoniaReactor": AmmoniaReactorOp,
    "condensateSeparator": CondensateSeparatorOp,
    "absorber": AbsorberOp,
    "stripper": StripperOp,
}
