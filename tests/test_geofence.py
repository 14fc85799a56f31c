"""
Tests for distance, geofence and service-area checks.
"""

import pytest

from sevasetu.models.complaint import Coordinates
from sevasetu.services.geofence import GeofenceValidator
from sevasetu.utils.geo import ServiceArea, haversine_distance

TARGET = Coordinates(lat=26.91, lng=75.80)


class TestHaversineDistance:
    def test_identical_points_are_zero_meters_apart(self):
        assert haversine_distance(26.91, 75.80, 26.91, 75.80) == 0.0

    def test_distance_is_symmetric(self):
        forward = haversine_distance(26.91, 75.80, 26.95, 75.71)
        backward = haversine_distance(26.95, 75.71, 26.91, 75.80)
        assert forward == pytest.approx(backward)

    def test_one_ten_thousandth_degree_of_latitude(self):
        # 6371000 * radians(0.0001)
        assert haversine_distance(26.91, 75.80, 26.9101, 75.80) == pytest.approx(11.119, abs=0.01)

    def test_nearby_officer_is_about_one_and_a_half_meters_away(self):
        distance = haversine_distance(26.91, 75.80, 26.91001, 75.80001)
        assert 1.0 < distance < 2.0


class TestGeofenceValidator:
    def test_default_tolerance_is_twenty_meters(self):
        assert GeofenceValidator().tolerance_meters == 20.0

    def test_same_position_passes(self):
        result = GeofenceValidator(20.0).verify(TARGET, TARGET)
        assert result.passed is True
        assert result.distance_meters == 0.0

    def test_just_inside_boundary_passes(self):
        # 0.000179 degrees of latitude is about 19.9m
        result = GeofenceValidator(20.0).verify(TARGET, Coordinates(lat=26.910179, lng=75.80))
        assert result.distance_meters < 20.0
        assert result.passed is True

    def test_just_outside_boundary_fails(self):
        # 0.00018 degrees of latitude is about 20.02m
        result = GeofenceValidator(20.0).verify(TARGET, Coordinates(lat=26.91018, lng=75.80))
        assert result.distance_meters > 20.0
        assert result.passed is False

    def test_exact_tolerance_fails(self):
        observed = Coordinates(lat=26.9101, lng=75.80)
        distance = haversine_distance(TARGET.lat, TARGET.lng, observed.lat, observed.lng)
        result = GeofenceValidator(distance).verify(TARGET, observed)
        assert result.passed is False

    def test_far_position_reports_distance(self):
        result = GeofenceValidator(20.0).verify(TARGET, Coordinates(lat=26.92, lng=75.80))
        assert result.passed is False
        assert result.distance_meters == pytest.approx(1111.9, abs=1.0)


class TestServiceArea:
    def setup_method(self):
        self.area = ServiceArea(min_lat=26.8, max_lat=27.0, min_lng=75.7, max_lng=75.9)

    def test_inside(self):
        assert self.area.contains(26.91, 75.80)

    def test_bounds_are_inclusive(self):
        assert self.area.contains(26.8, 75.7)
        assert self.area.contains(27.0, 75.9)

    @pytest.mark.parametrize("lat,lng", [(26.79, 75.80), (27.01, 75.80), (26.91, 75.69), (26.91, 75.91)])
    def test_outside(self, lat, lng):
        assert not self.area.contains(lat, lng)

    def test_missing_coordinates_are_outside(self):
        assert not self.area.contains(None, 75.80)
