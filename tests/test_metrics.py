import pytest

from conftest import FixedOracle, make_point
from routeseq.services.routing.errors import OracleError
from routeseq.services.routing.metrics import (
    calculate_route_metrics,
    compare_fuel,
    congestion_level,
    congestion_ratio,
    estimate_fuel,
)
from routeseq.services.routing.models import RouteMetrics, TravelMatrix


def test_metrics_sum_consecutive_legs(small_oracle):
    tour = [make_point(pid) for pid in ("H", "A", "B", "C")]

    metrics = calculate_route_metrics(tour, small_oracle)

    assert metrics.total_distance_km == pytest.approx(3.0)
    assert metrics.total_duration_min == pytest.approx(3.0)
    assert [stop.sequence for stop in metrics.stops] == [1, 2, 3]
    assert [stop.point.point_id for stop in metrics.stops] == ["A", "B", "C"]
    assert [stop.arrival_min for stop in metrics.stops] == pytest.approx([1.0, 2.0, 3.0])
    assert [stop.distance_from_prev_km for stop in metrics.stops] == pytest.approx([1.0, 1.0, 1.0])


def test_metrics_follow_the_given_order(small_oracle):
    tour = [make_point(pid) for pid in ("H", "C", "A", "B")]
    metrics = calculate_route_metrics(tour, small_oracle)
    assert metrics.total_distance_km == pytest.approx(10 + 9 + 1)
    assert small_oracle.calls[-1] == (("H", "C", "A", "B"), False)


def test_metrics_for_trivial_tours_skip_the_oracle(small_oracle):
    assert calculate_route_metrics([], small_oracle) == RouteMetrics(0.0, 0.0)
    assert calculate_route_metrics([make_point("H")], small_oracle) == RouteMetrics(0.0, 0.0)
    assert small_oracle.calls == []


def test_metrics_pass_traffic_mode_to_the_oracle():
    oracle = FixedOracle({("H", "A"): 2}, traffic_factor=1.5)
    tour = [make_point("H"), make_point("A")]

    metrics = calculate_route_metrics(tour, oracle, traffic_aware=True)

    assert metrics.total_distance_km == pytest.approx(2.0)
    assert metrics.total_duration_min == pytest.approx(3.0)
    assert oracle.calls == [(("H", "A"), True)]


def test_missing_leg_raises_oracle_error():
    oracle = FixedOracle({("H", "A"): 1})
    with pytest.raises(OracleError):
        calculate_route_metrics([make_point("H"), make_point("A"), make_point("Z")], oracle)


def test_wrong_sized_matrix_raises_oracle_error():
    class ShortOracle:
        def matrix(self, points, traffic_aware=False):
            return TravelMatrix.from_tables([[0]], [[0]])

    with pytest.raises(OracleError):
        calculate_route_metrics([make_point("H"), make_point("A")], ShortOracle())


def test_estimate_fuel():
    estimate = estimate_fuel(RouteMetrics(50.0, 60.0), fuel_cost_per_liter=2.0, consumption_l_per_100km=8.0)
    assert estimate.fuel_liters == pytest.approx(4.0)
    assert estimate.fuel_cost == pytest.approx(8.0)


def test_compare_fuel_projects_monthly_and_yearly():
    savings = compare_fuel(
        RouteMetrics(100.0, 120.0),
        RouteMetrics(80.0, 100.0),
        fuel_cost_per_liter=1.5,
        consumption_l_per_100km=10.0,
        working_days_per_month=20,
    )

    assert savings.distance_savings_km == pytest.approx(20.0)
    assert savings.time_savings_min == pytest.approx(20.0)
    assert savings.fuel_savings_liters == pytest.approx(2.0)
    assert savings.fuel_savings_cost == pytest.approx(3.0)
    assert savings.fuel_savings_percentage == pytest.approx(20.0)
    assert savings.monthly_savings_liters == pytest.approx(40.0)
    assert savings.monthly_savings_cost == pytest.approx(60.0)
    assert savings.yearly_savings_liters == pytest.approx(480.0)
    assert savings.yearly_savings_cost == pytest.approx(720.0)


def test_compare_fuel_with_zero_baseline_has_zero_percentage():
    savings = compare_fuel(
        RouteMetrics(0.0, 0.0),
        RouteMetrics(0.0, 0.0),
        fuel_cost_per_liter=1.5,
        consumption_l_per_100km=10.0,
        working_days_per_month=20,
    )
    assert savings.fuel_savings_percentage == 0.0


@pytest.mark.parametrize(
    ("ratio", "level"),
    [(1.0, "low"), (1.09, "low"), (1.1, "moderate"), (1.29, "moderate"), (1.3, "high"), (1.5, "severe"), (2.4, "severe")],
)
def test_congestion_level_thresholds(ratio, level):
    assert congestion_level(ratio) == level


def test_congestion_ratio_handles_zero_free_flow():
    assert congestion_ratio(RouteMetrics(0.0, 0.0), RouteMetrics(0.0, 5.0)) == 1.0
    assert congestion_ratio(RouteMetrics(10.0, 20.0), RouteMetrics(10.0, 30.0)) == pytest.approx(1.5)


def test_metrics_use_the_leg_in_travel_direction():
    oracle = FixedOracle({("H", "A"): 1, ("A", "H"): 5}, directed=True)

    outbound = calculate_route_metrics([make_point("H"), make_point("A")], oracle)
    inbound = calculate_route_metrics([make_point("A"), make_point("H")], oracle)

    assert outbound.total_distance_km == pytest.approx(1.0)
    assert inbound.total_distance_km == pytest.approx(5.0)
