"""
Tests for the Adjust operation and parameter sweeps.
"""

import pytest

from ammonia_sim import schemas
from ammonia_sim.adjust_operation import clone_with_value, extract_output, run_adjust
from ammonia_sim.pipeline import evaluate_pipeline
from ammonia_sim.sensitivity import run_sensitivity


@pytest.fixture
def inputs():
    return schemas.PlantInputs()


class TestInputPaths:
    def test_clone_sets_nested_value(self, inputs):
        clone = clone_with_value(inputs, "feed.air.flow_nm3_per_h", 42000.0)
        assert clone.feed.air.flow_nm3_per_h == 42000.0
        assert inputs.feed.air.flow_nm3_per_h == 140000.0

    def test_clone_can_add_composition_entry(self, inputs):
        clone = clone_with_value(inputs, "feed.process_gas.composition_pct.N2", 1.5)
        assert clone.feed.process_gas.composition_pct["N2"] == 1.5

    @pytest.mark.parametrize(
        "path",
        [
            "feed.nothing",
            "conversions.bogus_conversion",
            "x.y.z",
            "feed.process_gas.composition_pct.XE",
            "feed.air",
            "methanator_inlet_override",
        ],
    )
    def test_bad_path_raises(self, inputs, path):
        with pytest.raises(KeyError):
            clone_with_value(inputs, path, 1.0)

    def test_extract_kpi_and_stream_values(self, inputs):
        outputs = evaluate_pipeline(inputs)
        assert extract_output(outputs, "hn_ratio") == outputs.kpis.hn_ratio
        assert extract_output(outputs, "ammonia_reactor.outlet.NH3") == (
            outputs.stage("ammonia_reactor").outlet.mole_fractions["NH3"]
        )
        assert extract_output(outputs, "lts.inlet.total_moles") == outputs.stage("lts").inlet.total_moles
        assert extract_output(outputs, "lts.sideways.CO") is None
        assert extract_output(outputs, "nowhere.outlet.CO") is None


class TestAdjust:
    def test_air_flow_for_target_hn_ratio(self, inputs):
        """Trim process air until the converter inlet H/N is 3.0."""
        request = schemas.AdjustRequest(
            inputs=inputs,
            variable_path="feed.air.flow_nm3_per_h",
            variable_min=1000.0,
            variable_max=300000.0,
            target_kpi="hn_ratio",
            target_value=3.0,
        )
        result = run_adjust(request)
        adjust = result.diagnostics["adjust"]
        assert adjust["converged"] is True
        assert 1000.0 < adjust["converged_value"] < 300000.0
        assert result.kpis.hn_ratio == pytest.approx(3.0, abs=1e-4)

    def test_unreachable_target_returns_midpoint(self, inputs):
        request = schemas.AdjustRequest(
            inputs=inputs,
            variable_path="feed.air.flow_nm3_per_h",
            variable_min=1000.0,
            variable_max=2000.0,
            target_kpi="hn_ratio",
            target_value=3.0,
        )
        result = run_adjust(request)
        assert result.diagnostics["adjust"]["converged"] is False
        assert result.diagnostics["adjust"]["evaluated_value"] == pytest.approx(1500.0)
        assert any("Adjust failed" in w for w in result.warnings)

    def test_bad_variable_path(self, inputs):
        request = schemas.AdjustRequest(
            inputs=inputs, variable_path="feed.air.speed", variable_min=0.0, variable_max=1.0,
        )
        with pytest.raises(KeyError):
            run_adjust(request)

    def test_unknown_target_rejected_before_solving(self, inputs):
        request = schemas.AdjustRequest(
            inputs=inputs,
            variable_path="feed.air.flow_nm3_per_h",
            variable_min=1000.0,
            variable_max=300000.0,
            target_kpi="not_a_kpi",
        )
        with pytest.raises(KeyError, match="not_a_kpi"):
            run_adjust(request)


class TestSensitivity:
    def test_converter_conversion_sweep(self, inputs):
        request = schemas.SensitivityRequest(
            inputs=inputs,
            variable_path="conversions.ammonia_reactor_n2_conversion",
            variable_min=0.0,
            variable_max=0.3,
            n_points=4,
            outputs=["ammonia_production_t_per_day", "ammonia_reactor.outlet.NH3"],
        )
        result = run_sensitivity(request)
        assert result.parameter_values == pytest.approx([0.0, 0.1, 0.2, 0.3])
        production = result.results["ammonia_production_t_per_day"]
        assert production[0] == pytest.approx(0.0, abs=1e-9)
        assert production == sorted(production)
        assert production[-1] == pytest.approx(3 * production[1])
        assert not result.warnings

    def test_minimum_two_points(self, inputs):
        request = schemas.SensitivityRequest(
            inputs=inputs, variable_path="feed.steam_t_per_h",
            variable_min=200.0, variable_max=300.0, n_points=1,
        )
        assert run_sensitivity(request).parameter_values == [200.0, 300.0]

    def test_bad_path_gives_none_with_warning(self, inputs):
        request = schemas.SensitivityRequest(
            inputs=inputs, variable_path="feed.unknown",
            variable_min=0.0, variable_max=1.0, n_points=3, outputs=["hn_ratio"],
        )
        result = run_sensitivity(request)
        assert result.results["hn_ratio"] == [None, None, None]
        assert result.warnings

    @pytest.mark.parametrize(
        "path",
        ["feed.process_gas.composition_pct.XE", "feed.air", "methanator_inlet_override"],
    )
    def test_rejected_value_gives_none_with_warning(self, inputs, path):
        request = schemas.SensitivityRequest(
            inputs=inputs, variable_path=path,
            variable_min=0.0, variable_max=1.0, n_points=2, outputs=["hn_ratio"],
        )
        result = run_sensitivity(request)
        assert result.results["hn_ratio"] == [None, None]
        assert any(path in w for w in result.warnings)

    def test_unknown_output_warns(self, inputs):
        request = schemas.SensitivityRequest(
            inputs=inputs, variable_path="feed.steam_t_per_h",
            variable_min=200.0, variable_max=300.0, n_points=2, outputs=["not_a_kpi"],
        )
        result = run_sensitivity(request)
        assert result.results["not_a_kpi"] == [None, None]
        assert any("not_a_kpi" in w for w in result.warnings)
