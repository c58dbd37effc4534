"""
Derived stream records.

A :class:`Stream` is a pure function of its component vector: totals,
volumetric flow and wet/dry mole fractions are computed once when the
stream is derived and the arrays are frozen so nothing downstream can
mutate them in place.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np

from .species import (
    MOLAR_VOLUME_NM3,
    MOLECULAR_WEIGHTS,
    Species,
    as_vector,
)


@dataclass(frozen=True)
class Stream:
    """Molar flows plus everything derived from them."""

    moles: np.ndarray  # kgmol/hr per species
    total_moles: float  # kgmol/hr
    total_volume: float  # Nm³/hr
    mole_fractions: np.ndarray  # wet basis
    dry_total_moles: float  # kgmol/hr excluding H2O
    dry_mole_fractions: np.ndarray  # H2O entry is always 0
    mass_flow: float  # kg/hr

    def __getitem__(self, species: Species) -> float:
        return float(self.moles[species])

    @property
    def volumes(self) -> np.ndarray:
        """Per-species volumetric flow (Nm³/hr)."""
        return self.moles * MOLAR_VOLUME_NM3


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


def derive_stream(vector) -> Stream:
    """
    Derive a :class:`Stream` from a raw component vector.

    Mole fractions are all zero when the total flow is not positive; dry fractions
    are all zero when the dry total is not positive.  Neither case raises.
    """
    moles = as_vector(vector)
    total = float(moles.sum())

    if total > 0.0:
        fractions = moles / total
    else:
        fractions = np.zeros_like(moles)

    dry_total = total - float(moles[Species.H2O])
    if dry_total > 0.0:
        dry_fractions = moles / dry_total
        dry_fractions[Species.H2O] = 0.0
    else:
        dry_fractions = np.zeros_like(moles)

    return Stream(
        moles=_frozen(moles),
        total_moles=total,
        total_volume=total * MOLAR_VOLUME_NM3,
        mole_fractions=_frozen(fractions),
        dry_total_moles=dry_total,
        dry_mole_fractions=_frozen(dry_fractions),
        mass_flow=float(moles @ MOLECULAR_WEIGHTS),
    )
