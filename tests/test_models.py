import math

import pytest

from cvrp.errors import ConfigurationError
from cvrp.models import Location, Problem, Vehicle, parse_category


def _payload():
    return {
        "locations": [
            {"id": 0, "x": 0, "y": 0, "type": "depot"},
            {"id": 7, "x": 3, "y": 4, "demand": 2, "time_window": [5, 50], "service_time": 1},
            {"id": 9, "x": 1, "y": 1, "type": "Charging Station"},
            {"id": 11, "x": 6, "y": 8, "demand": 1, "type": "warehouse"},
        ],
        "vehicles": [
            {"id": 1, "speed": 40, "max_fuel": 100, "min_fuel": 10, "capacity": 20},
        ],
        "disruptions": [
            {"category": "weather", "begin": [0, 0], "end": [2, 2], "severity": "fog"},
        ],
    }


def test_parse_category():
    assert parse_category("depot") == "depot"
    assert parse_category("Refueling Station") == "refueling_station"
    assert parse_category("charging_station") == "refueling_station"
    assert parse_category("anything else") == "customer"
    assert parse_category(None) == "customer"


def test_problem_from_dict():
    problem = Problem.from_dict(_payload())

    assert problem.depot.id == 0
    assert problem.station_indices == (2,)
    # unknown labels are treated as customers
    assert problem.customer_indices == (1, 3)
    assert problem.index_of(11) == 3
    assert problem.distance(0, 1) == pytest.approx(5.0)

    customer = problem.locations[1]
    assert customer.earliest == 5
    assert customer.latest == 50
    assert customer.service_time == 1
    assert math.isinf(problem.locations[3].latest)

    assert problem.disruptions[0].delay_minutes == 8
    assert problem.summary() == {
        "locations": 4,
        "customers": 2,
        "refueling_stations": 1,
        "vehicles": 1,
        "disruptions": 1,
    }


def test_problem_requires_exactly_one_depot():
    vehicles = [Vehicle(1, 1, 100, 0, 10)]
    with pytest.raises(ConfigurationError, match="No depot"):
        Problem([Location(1, 0, 0, demand=1)], vehicles)
    with pytest.raises(ConfigurationError):
        Problem([Location(0, 0, 0, category="depot"), Location(1, 1, 1, category="depot")], vehicles)


def test_problem_rejects_duplicate_ids():
    with pytest.raises(ConfigurationError):
        Problem([Location(0, 0, 0, category="depot"), Location(0, 1, 1)], [])


def test_malformed_payloads():
    with pytest.raises(ConfigurationError):
        Problem.from_dict([])

    missing_coordinate = _payload()
    del missing_coordinate["locations"][1]["x"]
    with pytest.raises(ConfigurationError):
        Problem.from_dict(missing_coordinate)

    bad_disruption = _payload()
    bad_disruption["disruptions"][0]["category"] = "volcano"
    with pytest.raises(ConfigurationError):
        Problem.from_dict(bad_disruption)
