"""
Override anchors for the methanator and ammonia converter inlets.

An anchor is always stored as a complete vector.  The first edit copies the
inlet the stage currently receives and patches one species over it; later
edits patch over the stored anchor.  Clearing the anchor lets the stage go
back to the inlet derived from upstream.
"""

from __future__ import annotations

import numpy as np
from loguru import logger

from . import schemas
from .pipeline import OVERRIDE_FIELDS, PlantSolver
from .species import SpeciesKey, as_vector, make_vector, merge_override, resolve_species, vector_to_dict


def _field_for(stage: str) -> str:
    try:
        return OVERRIDE_FIELDS[stage]
    except KeyError:
        raise ValueError(
            f"Stage '{stage}' does not accept an inlet override "
            f"(expected one of {', '.join(OVERRIDE_FIELDS)})"
        ) from None


def current_inlet(inputs: schemas.PlantInputs, stage: str) -> np.ndarray:
    """The inlet the stage consumes for these inputs, override included."""
    _field_for(stage)
    return PlantSolver(inputs).solve().inlet(stage)


def set_override(inputs: schemas.PlantInputs, stage: str, flows) -> schemas.PlantInputs:
    field_name = _field_for(stage)
    return inputs.model_copy(update={field_name: vector_to_dict(as_vector(flows))})


def edit_inlet(
    inputs: schemas.PlantInputs,
    stage: str,
    species: SpeciesKey,
    value,
) -> schemas.PlantInputs:
    """Return new inputs with ``species`` pinned to ``value`` at the stage inlet."""
    field_name = _field_for(stage)
    species = resolve_species(species)

    existing = getattr(inputs, field_name)
    base = make_vector(existing) if existing is not None else current_inlet(inputs, stage)
    merged = merge_override(base, species, value)

    logger.info("Override on '{}' inlet: {} = {}", stage, species.name, merged[species])
    return inputs.model_copy(update={field_name: vector_to_dict(merged)})


def clear_override(inputs: schemas.PlantInputs, stage: str) -> schemas.PlantInputs:
    field_name = _field_for(stage)
    if getattr(inputs, field_name) is not None:
        logger.info("Override on '{}' inlet cleared", stage)
    return inputs.model_copy(update={field_name: None})
