"""Tests for plant KPIs."""

import pytest

from ammonia_sim import kpi
from ammonia_sim.species import MOLAR_VOLUME_NM3, make_vector
from ammonia_sim.stream import derive_stream

PROCESS_GAS = {"CH4": 95.0, "C2H6": 2.5, "CO2": 0.5, "H2": 2.0}


class TestCarbonNumber:
    def test_process_gas_carbon_number(self):
        assert kpi.process_gas_carbon_number(PROCESS_GAS) == pytest.approx(1.005)

    def test_carbon_number_from_fractions(self):
        assert kpi.carbon_number({"CH4": 0.5, "CO": 0.2, "C2H6": 0.1}) == pytest.approx(0.9)

    def test_feed_carbon_number_ignores_steam(self):
        wet = make_vector({"CH4": 95.0, "C2H6": 2.5, "CO2": 0.5, "H2": 2.0, "H2O": 300.0})
        assert kpi.feed_carbon_number(derive_stream(wet)) == pytest.approx(1.005)

    def test_feed_carbon_number_all_water(self):
        assert kpi.feed_carbon_number(derive_stream(make_vector({"H2O": 10.0}))) == 0.0


class TestRatios:
    def test_steam_to_carbon(self):
        ratio = kpi.steam_to_carbon_ratio(250.0, 1.005, 100000.0)
        expected = (250.0 * 1000.0 / 18.0) / (1.005 * 100000.0 / MOLAR_VOLUME_NM3)
        assert ratio == pytest.approx(expected)
        assert ratio == pytest.approx(250.0 * 1245.2222222 / (1.005 * 100000.0))

    @pytest.mark.parametrize("carbon,flow", [(0.0, 100000.0), (1.0, 0.0), (-1.0, 100.0)])
    def test_steam_to_carbon_degenerate(self, carbon, flow):
        assert kpi.steam_to_carbon_ratio(250.0, carbon, flow) == 0.0

    def test_front_end_load(self):
        load = kpi.front_end_load(100000.0, 1.005, 110000.0, 1.05)
        assert load == pytest.approx(100500.0 / 115500.0)

    def test_front_end_load_without_design_basis(self):
        assert kpi.front_end_load(100000.0, 1.005, 0.0, 1.05) == 0.0

    def test_hn_ratio(self):
        stream = derive_stream(make_vector({"H2": 300.0, "N2": 100.0}))
        assert kpi.hn_ratio(stream) == pytest.approx(3.0)

    def test_hn_ratio_without_nitrogen(self):
        assert kpi.hn_ratio(derive_stream(make_vector({"H2": 300.0}))) == 0.0

    def test_gas_to_air_ratio(self):
        assert kpi.gas_to_air_ratio(100000.0, 40000.0) == pytest.approx(2.5)
        assert kpi.gas_to_air_ratio(100000.0, 0.0) == 0.0

    def test_ammonia_production(self):
        inlet = derive_stream(make_vector({"N2": 100.0, "H2": 300.0, "NH3": 1.0}))
        outlet = derive_stream(make_vector({"N2": 90.0, "H2": 270.0, "NH3": 21.0}))
        # 20 kgmol/hr NH3 formed
        assert kpi.ammonia_production_t_per_day(inlet, outlet) == pytest.approx(
            20.0 * 17.03 * 24 / 1000.0, rel=1e-3
        )
