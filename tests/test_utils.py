"""Tests for utility functions."""

import pytest

from health_maps import utils


def test_env_vars_are_substituted(monkeypatch):
    monkeypatch.setenv('HM_TEST_TOKEN', 'secret')
    monkeypatch.delenv('HM_TEST_MISSING', raising=False)

    config = utils.load_config_with_env_vars({
        'external_apis': {'token': '${HM_TEST_TOKEN}', 'other': '${HM_TEST_MISSING}'},
        'hosts': ['a-${HM_TEST_TOKEN}', 3],
    })

    assert config['external_apis'] == {'token': 'secret', 'other': ''}
    assert config['hosts'] == ['a-secret', 3]


def test_load_default_config(monkeypatch):
    monkeypatch.setenv('MAPBOX_ACCESS_TOKEN', 'pk.test')
    config = utils.load_config()

    assert config['external_apis']['mapbox_access_token'] == 'pk.test'
    assert config['sampling']['step_km'] == 0.3
    assert config['server']['port'] == 3000


def test_missing_config_file():
    with pytest.raises(FileNotFoundError):
        utils.load_config('config/does_not_exist.yml')


@pytest.mark.parametrize('value, expected', [
    (0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (-0.5, 0), (-1.5, -1), (88.0, 88),
])
def test_round_half_up(value, expected):
    assert utils.round_half_up(value) == expected


def test_haversine_one_degree_of_latitude():
    assert utils.haversine_distance(0, 0, 1, 0) == pytest.approx(111195.08, abs=0.1)


def test_destination_point_round_trip():
    lon, lat = utils.destination_point(75.8, 25.2, 5000, 45)

    assert utils.haversine_distance(25.2, 75.8, lat, lon) == pytest.approx(5000)
    assert utils.initial_bearing(75.8, 25.2, lon, lat) == pytest.approx(45)
