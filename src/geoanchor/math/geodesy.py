"""Spherical geodesy for short-range anchor placement.

The placement pipeline works on a sphere of equatorial radius and a flat
local tangent plane. That is accurate to well under a metre over the few
hundred metres an AR scene spans. The WGS84 helpers at the bottom give
ellipsoidal reference values for diagnostics.
"""
from __future__ import annotations

import math
from typing import Tuple

from pyproj import Geod

from ..models.geo import GpsCoordinate, LocalPosition

EARTH_RADIUS_M = 6_378_137.0  # WGS84 equatorial radius
WGS84_GEOD = Geod(ellps="WGS84")


def haversine_distance_m(a: GpsCoordinate, b: GpsCoordinate) -> float:
    """Great-circle distance in metres between two coordinates."""
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_lat / 2.0) ** 2
        + math.cos(a.latitude_rad) * math.cos(b.latitude_rad) * math.sin(d_lon / 2.0) ** 2
    )
    c = 2.0 * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))
    return EARTH_RADIUS_M * c


def initial_bearing_deg(origin: GpsCoordinate, target: GpsCoordinate) -> float:
    """Initial great-circle bearing from ``origin`` to ``target``.

    Returns degrees clockwise from north in ``[0, 360)``. The bearing of a
    point to itself is undefined; it is reported as ``0.0``.
    """
    if origin == target:
        return 0.0

    d_lon = math.radians(target.longitude - origin.longitude)
    lat1 = origin.latitude_rad
    lat2 = target.latitude_rad

    y = math.sin(d_lon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(d_lon)

    bearing = math.degrees(math.atan2(y, x)) % 360.0
    # Tiny negative angles round up to exactly 360.0 under the modulo.
    if bearing >= 360.0:
        bearing = 0.0
    return bearing


def local_tangent_plane(
    origin: GpsCoordinate,
    origin_elevation: float,
    target: GpsCoordinate,
    target_elevation: float,
) -> LocalPosition:
    """Project ``target`` into an East/Up/North frame centred on ``origin``.

    Equirectangular small-area approximation: longitude differences are
    scaled by the cosine of the origin latitude only, with no further
    curvature correction.
    """
    d_lat = target.latitude_rad - origin.latitude_rad
    d_lon = target.longitude_rad - origin.longitude_rad

    east = d_lon * EARTH_RADIUS_M * math.cos(origin.latitude_rad)
    north = d_lat * EARTH_RADIUS_M
    up = target_elevation - origin_elevation
    return LocalPosition(east=east, up=up, north=north)


def local_to_gps(
    origin: GpsCoordinate,
    origin_elevation: float,
    position: LocalPosition,
) -> Tuple[GpsCoordinate, float]:
    """Inverse of :func:`local_tangent_plane` on the same flat frame.

    Returns the coordinate and elevation of ``position`` relative to
    ``origin``. Undefined at the poles, where the east axis collapses.
    """
    latitude = origin.latitude + math.degrees(position.north / EARTH_RADIUS_M)
    longitude = origin.longitude + math.degrees(
        position.east / (EARTH_RADIUS_M * math.cos(origin.latitude_rad))
    )
    return GpsCoordinate(longitude=longitude, latitude=latitude), origin_elevation + position.up


def geodesic_inverse(a: GpsCoordinate, b: GpsCoordinate) -> Tuple[float, float, float]:
    """Return forward azimuth, back azimuth, and distance on WGS84.

    Azimuths are returned in degrees in ``[0, 360)`` and distance in metres.
    """
    forward_deg, back_deg, distance_m = WGS84_GEOD.inv(
        a.longitude,
        a.latitude,
        b.longitude,
        b.latitude,
    )
    return (forward_deg % 360.0), (back_deg % 360.0), float(distance_m)


def forward_azimuth_deg(a: GpsCoordinate, b: GpsCoordinate) -> float:
    """Return WGS84 forward azimuth from point A to B in degrees."""
    azimuth_deg, _, _ = geodesic_inverse(a, b)
    return azimuth_deg


def geodesic_distance_m(a: GpsCoordinate, b: GpsCoordinate) -> float:
    """Return WGS84 geodesic distance between two geodetic points."""
    _, _, distance_m = geodesic_inverse(a, b)
    return distance_m
