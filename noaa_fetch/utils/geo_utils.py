# ABOUTME: Geographic utility functions for distance and bounding box calculations
# ABOUTME: Used by the ISD station search; works on scalars and numpy/pandas arrays

import numpy as np

EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Calculate the Haversine distance between points on the Earth.

    Args:
        lat1, lon1: Latitude/longitude of point 1 in decimal degrees
        lat2, lon2: Latitude/longitude of point 2 in decimal degrees (may be arrays)

    Returns:
        float or ndarray: Distance in kilometers
    """
    dlat = np.radians(lat2 - lat1)
    dlon = np.radians(lon2 - lon1)

    a = np.sin(dlat / 2) ** 2 + np.cos(np.radians(lat1)) * np.cos(np.radians(lat2)) * np.sin(dlon / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def get_bounding_box(latitude_deg, longitude_deg, radius_km):
    """
    Calculate a bounding box around a center point with specified radius.

    Returns:
        tuple: (min_lat, max_lat, min_lon, max_lon)
    """
    lat_change = radius_km / 110.574
    lon_change = radius_km / (111.320 * np.cos(np.radians(latitude_deg)))

    return (
        latitude_deg - lat_change,
        latitude_deg + lat_change,
        longitude_deg - lon_change,
        longitude_deg + lon_change,
    )
