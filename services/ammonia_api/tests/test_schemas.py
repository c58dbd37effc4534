"""Tests for input coercion and saved-state round trips."""

import json

import pytest
from pydantic import ValidationError

from ammonia_sim import schemas


class TestCoercion:
    def test_malformed_numbers_become_zero(self):
        spec = schemas.GasFeedSpec(composition_pct={"CH4": "abc", "H2": None}, flow_nm3_per_h="")
        assert spec.flow_nm3_per_h == 0.0
        assert spec.composition_pct == {"CH4": 0.0, "H2": 0.0}

    def test_conversions_are_not_range_clamped(self):
        params = schemas.ConversionParameters(hts_co_conversion=1.7, lts_co_conversion=-0.2)
        assert params.hts_co_conversion == 1.7
        assert params.lts_co_conversion == -0.2

    def test_unknown_species_in_composition(self):
        with pytest.raises(ValidationError):
            schemas.GasFeedSpec(composition_pct={"Xe": 1.0}, flow_nm3_per_h=1.0)

    def test_inputs_are_immutable(self):
        inputs = schemas.PlantInputs()
        with pytest.raises(ValidationError):
            inputs.design = schemas.DesignBasis(carbon_number=2.0)

    def test_partial_override_is_completed(self):
        inputs = schemas.PlantInputs(methanator_inlet_override={"CO": 5.0, "H2": "x"})
        override = inputs.methanator_inlet_override
        assert len(override) == 10
        assert override["CO"] == 5.0
        assert override["H2"] == 0.0
        assert override["NH3"] == 0.0

    def test_override_must_be_mapping(self):
        with pytest.raises(ValidationError):
            schemas.PlantInputs(ammonia_reactor_inlet_override=[1.0, 2.0])


class TestSavedState:
    def test_round_trip_through_json(self):
        inputs = schemas.PlantInputs(
            feed=schemas.PlantFeedSpec(steam_t_per_h=130.0),
            methanator_inlet_override={"CO": 1.0, "N2": 700.0},
        )
        record = json.loads(inputs.model_dump_json())
        assert schemas.PlantInputs.merge_saved(record) == inputs

    def test_partial_record_merges_over_defaults(self):
        merged = schemas.PlantInputs.merge_saved(
            {"feed": {"steam_t_per_h": 130.0}, "design": {"carbon_number": 1.1}}
        )
        defaults = schemas.PlantInputs()
        assert merged.feed.steam_t_per_h == 130.0
        assert merged.design.carbon_number == 1.1
        assert merged.feed.process_gas == defaults.feed.process_gas
        assert merged.design.process_gas_flow_nm3_per_h == defaults.design.process_gas_flow_nm3_per_h
        assert merged.methanator_inlet_override is None

    def test_composition_is_replaced_not_merged(self):
        merged = schemas.PlantInputs.merge_saved(
            {"feed": {"process_gas": {"composition_pct": {"CH4": 100.0}}}}
        )
        assert merged.feed.process_gas.composition_pct == {"CH4": 100.0}
        assert merged.feed.process_gas.flow_nm3_per_h == 100000.0

    def test_empty_record_gives_defaults(self):
        assert schemas.PlantInputs.merge_saved({}) == schemas.PlantInputs()
