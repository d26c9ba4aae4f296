"""
Fixed constants shared across the Qibla compass.
"""

# Kaaba coordinates in Mecca, Saudi Arabia (decimal degrees)
KAABA_LATITUDE = 21.4225
KAABA_LONGITUDE = 39.8262

# Degrees in a full turn
FULL_CIRCLE = 360.0

# Mean Earth radius in kilometers (spherical model)
EARTH_RADIUS_KM = 6371.0

# Rotation angles within this many degrees of 0 count as facing the Qibla
DEFAULT_ALIGNMENT_TOLERANCE = 5.0
