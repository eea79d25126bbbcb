from cvrp.disruptions import (ROAD_EVENT, TRAFFIC, WEATHER, DisruptionSegment, boxes_overlap,
                              compute_delay, road_event_delay, traffic_delay, weather_delay)


def test_traffic_delay_steps():
    assert traffic_delay(80) == 0
    assert traffic_delay(60) == 5
    assert traffic_delay(45) == 5
    assert traffic_delay(30) == 10
    assert traffic_delay(20) == 15
    assert traffic_delay(5) == 15


def test_labelled_delays_are_case_insensitive():
    assert road_event_delay("Accident") == 5
    assert road_event_delay("construction") == 10
    assert road_event_delay("ROADBLOCK") == 15
    assert weather_delay("Heavy Rain") == 8
    assert weather_delay("snow") == 15


def test_unknown_inputs_give_no_delay():
    assert road_event_delay("meteor") == 0
    assert weather_delay("sunny-ish") == 0
    assert compute_delay("earthquake", "big") == 0
    assert compute_delay(TRAFFIC, "fast") == 0
    assert compute_delay(TRAFFIC, None) == 0


def test_compute_delay_dispatches_on_category():
    assert compute_delay(TRAFFIC, 10) == 15
    assert compute_delay(ROAD_EVENT, "accident") == 5
    assert compute_delay(WEATHER, "fog") == 8


def test_boxes_overlap_is_inclusive():
    # touching at a single corner still counts
    assert boxes_overlap(0, 0, 1, 0, 1, 0, 2, 1)
    assert boxes_overlap(0, 0, 10, 0, 4, -1, 6, 1)
    assert not boxes_overlap(0, 0, 1, 1, 2, 2, 3, 3)


def test_segment_delay_fixed_at_construction():
    segment = DisruptionSegment.road_event((4, -1), (6, 1), "construction")
    assert segment.category == ROAD_EVENT
    assert segment.delay_minutes == 10
    assert segment.overlaps_edge(0, 0, 10, 0)
    assert not segment.overlaps_edge(0, 5, 10, 5)


def test_segment_factories():
    assert DisruptionSegment.traffic((0, 0), (1, 1), 35).delay_minutes == 10
    assert DisruptionSegment.weather((0, 0), (1, 1), "storm").delay_minutes == 15
