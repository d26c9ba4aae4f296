"""
Unit tests for geometry helper functions
"""
import pytest
import math
from qibla.models import GeoCoordinate, KAABA
from qibla.utils.geometry import (
    reduce_angle,
    bearing_between,
    bearing_to,
    rotation_angle,
    haversine_distance,
    angular_difference,
    is_aligned,
)


class TestReduceAngle:
    """Test cases for reduce_angle function"""

    @pytest.mark.parametrize("angle", [0, 360, -360, 400, -400, 1000, -1000, 720, -720, 359.9999])
    def test_result_in_range(self, angle):
        """Reduced angle should always be in [0, 360)"""
        result = reduce_angle(angle)
        assert 0 <= result < 360

    def test_known_values(self):
        """Test reduction of common out-of-range angles"""
        assert reduce_angle(400) == pytest.approx(40)
        assert reduce_angle(-400) == pytest.approx(320)
        assert reduce_angle(1000) == pytest.approx(280)
        assert reduce_angle(-1000) == pytest.approx(80)
        assert reduce_angle(-60) == pytest.approx(300)
        assert reduce_angle(359.9999) == pytest.approx(359.9999)

    def test_multiples_of_full_circle_reduce_to_zero(self):
        """Exact multiples of 360 should reduce to exactly 0"""
        for k in range(-5, 6):
            assert reduce_angle(360.0 * k) == 0.0

    def test_idempotent(self):
        """Reducing twice should give the same result as reducing once"""
        for angle in [-1e6, -721.5, -0.25, 0, 12.5, 359.9999, 1e9 + 0.5]:
            once = reduce_angle(angle)
            assert reduce_angle(once) == once

    def test_periodicity(self):
        """Adding a full turn should not change the result"""
        for angle in [-1000.5, -359.75, -1, 0, 0.001, 45, 180, 359.5, 12345.678]:
            for k in (-3, -1, 1, 2, 10):
                expected = reduce_angle(angle)
                result = reduce_angle(angle + 360 * k)
                # Compare on the circle so 359.999... and 0 count as equal
                assert angular_difference(result, expected) < 1e-9

    def test_tiny_negative_angle(self):
        """A tiny negative angle must not come back as 360"""
        result = reduce_angle(-1e-20)
        assert 0 <= result < 360

    def test_large_values(self):
        """Values far outside the usual range should still reduce"""
        for angle in [1e12 + 90, -1e12 - 90, 10000.25, -10000.25]:
            assert 0 <= reduce_angle(angle) < 360


class TestBearingBetween:
    """Test cases for bearing_between function"""

    def test_north_bearing(self):
        """Bearing should be 0° when destination is due north"""
        bearing = bearing_between(0, 0, 1, 0)
        assert bearing == pytest.approx(0, abs=1e-9)

    def test_east_bearing(self):
        """Bearing should be 90° when destination is due east"""
        bearing = bearing_between(0, 0, 0, 1)
        assert 89 < bearing < 91

    def test_south_bearing(self):
        """Bearing should be 180° when destination is due south"""
        bearing = bearing_between(1, 0, 0, 0)
        assert 179 < bearing < 181

    def test_west_bearing(self):
        """Bearing should be 270° when destination is due west"""
        bearing = bearing_between(0, 1, 0, 0)
        assert 269 < bearing < 271

    def test_antimeridian_crossing(self):
        """Bearing across the date line should go the short way"""
        # From 179°E to 179°W is 2° east, not 358° west
        bearing = bearing_between(0, 179, 0, -179)
        assert 89 < bearing < 91

    def test_longitude_outside_range(self):
        """Longitudes past ±180 behave like their wrapped equivalents"""
        wrapped = bearing_between(10, 170, 21.4225, 39.8262)
        unwrapped = bearing_between(10, -190, 21.4225, 39.8262)
        assert unwrapped == pytest.approx(wrapped, abs=1e-9)


class TestBearingToKaaba:
    """Qibla bearings from known cities"""

    @pytest.mark.parametrize("name, lat, lon, low, high", [
        ("Jakarta", -6.2088, 106.8456, 293, 297),
        ("London", 51.5074, -0.1278, 117, 121),
        ("New York", 40.7128, -74.0060, 56, 60),
        ("Tokyo", 35.6762, 139.6503, 292, 296),
        # The forward azimuth from Sydney is 277.5°
        ("Sydney", -33.8688, 151.2093, 275.5, 279.5),
        ("Jeddah", 21.5433, 39.1728, 98, 104),
        ("Equator", 0.0, 0.0, 57, 60),
    ])
    def test_city_bearing(self, name, lat, lon, low, high):
        bearing = bearing_to(GeoCoordinate(lat, lon))
        assert low <= bearing <= high, f"{name}: {bearing:.2f}"

    def test_default_target_is_kaaba(self):
        """bearing_to should aim at the Kaaba unless told otherwise"""
        observer = GeoCoordinate(51.5074, -0.1278)
        assert bearing_to(observer) == bearing_to(observer, KAABA)

    @pytest.mark.parametrize("lat, lon", [(0.0, 0.0), (80.0, 0.0), (-80.0, 0.0), (21.4225, 39.8262)])
    def test_coincident_points(self, lat, lon):
        """Bearing to the same point is undefined but must stay in range"""
        point = GeoCoordinate(lat, lon)
        bearing = bearing_to(point, point)
        assert 0 <= bearing < 360

    def test_from_kaaba_to_itself(self):
        """atan2(0, 0) gives 0 in practice"""
        assert bearing_to(KAABA) == pytest.approx(0.0, abs=1.0)

    @pytest.mark.parametrize("lat", [90.0, -90.0, 89.9999, -89.9999])
    def test_poles(self, lat):
        """Bearing from the poles should be defined"""
        bearing = bearing_to(GeoCoordinate(lat, 0.0))
        assert 0 <= bearing < 360

    def test_from_north_pole_points_south(self):
        """From the North Pole the bearing is measured against the observer's meridian"""
        bearing = bearing_to(GeoCoordinate(90.0, 0.0))
        assert angular_difference(bearing, 180 - 39.8262) < 1e-6

    @pytest.mark.parametrize("lon", [179.0, -179.0])
    def test_antimeridian_observers(self, lon):
        bearing = bearing_to(GeoCoordinate(20.0, lon))
        assert 0 <= bearing < 360

    def test_northern_hemisphere_faces_south_east(self):
        bearing = bearing_to(GeoCoordinate(45.0, 0.0))
        assert 90 < bearing < 270

    def test_deterministic(self):
        observer = GeoCoordinate(51.5074, -0.1278)
        assert bearing_to(observer) == bearing_to(observer)


class TestRotationAngle:
    """Test cases for rotation_angle function"""

    def test_device_points_north(self):
        assert rotation_angle(0, 60) == pytest.approx(300.0, abs=0.01)

    def test_device_points_at_qibla(self):
        assert rotation_angle(45, 45) == 0.0

    def test_multi_turn_heading(self):
        assert rotation_angle(1000, 0) == pytest.approx(280.0, abs=0.01)

    def test_multi_turn_bearing(self):
        assert rotation_angle(0, 1000) == pytest.approx(80.0, abs=0.01)

    def test_cardinal_headings(self):
        """Rotation for a 60° bearing as the device turns"""
        assert rotation_angle(90, 60) == pytest.approx(30.0)
        assert rotation_angle(180, 60) == pytest.approx(120.0)
        assert rotation_angle(270, 60) == pytest.approx(210.0)
        assert rotation_angle(30, 60) == pytest.approx(330.0)

    def test_exact_full_turns(self):
        assert rotation_angle(360, 0) == 0.0
        assert rotation_angle(0, 360) == 0.0

    def test_periodic_in_heading(self):
        """A full extra turn of the heading changes nothing"""
        for heading in [-725.5, -10, 0, 33.3, 359.9, 1000]:
            for bearing in [0, 58.5, 118.9, 295.1]:
                assert angular_difference(
                    rotation_angle(heading + 360, bearing),
                    rotation_angle(heading, bearing),
                ) < 1e-9

    def test_negative_heading(self):
        assert rotation_angle(-30, 60) == pytest.approx(270.0)

    def test_result_range(self):
        for heading in range(-1080, 1081, 37):
            for bearing in (0, 119.0, 294.9, 359.99):
                assert 0 <= rotation_angle(heading, bearing) < 360


class TestHaversineDistance:
    """Test cases for haversine_distance function"""

    def test_same_location(self):
        """Distance between same points should be 0"""
        assert haversine_distance(51.5074, -0.1278, 51.5074, -0.1278) == 0

    def test_known_distance(self):
        """London to Mecca is roughly 4,790 km"""
        distance = haversine_distance(51.5074, -0.1278, 21.4225, 39.8262)
        assert 4700 < distance < 4900

    def test_antipodal_points(self):
        """Half the Earth's circumference, without a math domain error"""
        distance = haversine_distance(0, 0, 0, 180)
        assert distance == pytest.approx(math.pi * 6371.0, rel=1e-6)


class TestAlignment:
    """Test cases for angular_difference and is_aligned"""

    def test_angular_difference_wraparound(self):
        assert angular_difference(350, 10) == pytest.approx(20)
        assert angular_difference(10, 350) == pytest.approx(20)
        assert angular_difference(0, 180) == pytest.approx(180)

    @pytest.mark.parametrize("rotation, expected", [
        (0.0, True),
        (4.9, True),
        (355.5, True),
        (5.1, False),
        (180.0, False),
        (354.0, False),
    ])
    def test_is_aligned(self, rotation, expected):
        assert is_aligned(rotation, tolerance=5.0) == expected


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
