import pytest

from utils.time_utils import (
    extract_weeks_info,
    generate_class_id,
    merge_unavailability_windows,
    normalize_day,
    parse_weeks,
    ranges_overlap,
    time_to_hours,
)
from utils.timetable_generator import UnavailabilityWindow


@pytest.mark.parametrize('value, expected', [
    ('9:00am', 9.0),
    ('12:30pm', 12.5),
    ('12:00am', 0.0),
    ('1:15pm', 13.25),
    ('1pm', 13.0),
    ('13:30', 13.5),
    (' 9:45 AM ', 9.75),
])
def test_time_to_hours(value, expected):
    assert time_to_hours(value) == pytest.approx(expected)


@pytest.mark.parametrize('value', ['noon', '', '13:00pm', '9:75am', None, 900, 9.5])
def test_time_to_hours_rejects_garbage(value):
    with pytest.raises(ValueError):
        time_to_hours(value)


def test_normalize_day():
    assert normalize_day('MON') == 'Monday'
    assert normalize_day('friday') == 'Friday'
    assert normalize_day('Wednesday') == 'Wednesday'
    with pytest.raises(ValueError):
        normalize_day('Funday')
    with pytest.raises(ValueError):
        normalize_day('')
    with pytest.raises(ValueError):
        normalize_day(1)


@pytest.mark.parametrize('description, expected', [
    ('LEC01 (Week 9)', 'Week 9'),
    ('PRC02 Weeks 2-13', 'Weeks 2-13'),
    ('TUT01 Weeks 3–10', 'Weeks 3-10'),
    ('WOR01 Week 12', 'Week 12'),
    ('Weeks 1, 3, 5', 'Weeks 1, 3, 5'),
    ('LEC01', 'Weeks 1-13'),
    ('', 'Weeks 1-13'),
    (None, 'Weeks 1-13'),
])
def test_extract_weeks_info(description, expected):
    assert extract_weeks_info(description) == expected


def test_parse_weeks():
    assert parse_weeks('Weeks 2-4') == {2, 3, 4}
    assert parse_weeks('Week 9') == {9}
    assert parse_weeks('Weeks 1, 3, 5') == {1, 3, 5}
    assert parse_weeks('Weeks 1-13') == set(range(1, 14))
    assert parse_weeks('whenever') == set(range(1, 14))


def test_ranges_overlap_is_half_open():
    assert ranges_overlap(9, 11, 10, 12)
    assert ranges_overlap(9, 12, 10, 11)
    assert not ranges_overlap(9, 10, 10, 11)
    assert not ranges_overlap(13, 14, 9, 10)


def test_merge_unavailability_windows():
    windows = [
        UnavailabilityWindow('Monday', 10, 11),
        UnavailabilityWindow('Tuesday', 9, 10),
        UnavailabilityWindow('Monday', 9, 10),
        UnavailabilityWindow('Monday', 12, 13),
    ]

    merged = merge_unavailability_windows(windows)

    assert merged == [
        UnavailabilityWindow('Monday', 9, 11),
        UnavailabilityWindow('Monday', 12, 13),
        UnavailabilityWindow('Tuesday', 9, 10),
    ]


def test_merge_unavailability_windows_empty():
    assert merge_unavailability_windows([]) == []


def test_generate_class_id_is_stable():
    args = ('CAB202', 'Lecture', 'Monday', '9:00am', '10:00am', 'GP-Z411', 'LEC01 Weeks 1-13')

    assert generate_class_id(*args) == generate_class_id(*args)
    assert generate_class_id(*args) == 'CAB202-Lecture-Monday-9:00am-10:00am-GP-Z411-Weeks 1-13'
    assert generate_class_id(*args[:5], 'GP-P512', args[6]) != generate_class_id(*args)
