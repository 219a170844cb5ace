"""Internal constants shared across the library."""

BASE_URL = "http://localhost:3000"
USER_AGENT = "pycertplus"
API_KEY_HEADER = "x-api-key"

ASSETS_ENDPOINT = "/product"
ASSET_CREATE_ENDPOINT = "/product/create"
INTERVENTIONS_ENDPOINT = "/maintenance"
INTERVENTION_CREATE_ENDPOINT = "/maintenance/create"

#: Default freshness window for collection snapshots (5 minutes).
DEFAULT_CACHE_TTL: float = 5 * 60

#: Placeholder asset reference for intervention records whose owner
#: the remote service does not report.
SENTINEL_ASSET_ID = "a665a0ee-267e-4fc7-8395-8d8b893c781f"

# ------------------------------------------------------------------
# Coordinate storage constraints of the remote service
# ------------------------------------------------------------------

COORDINATE_DECIMALS = 6
COORDINATE_MAX_DIGITS = 9
LATITUDE_LIMIT = 90.0
LONGITUDE_LIMIT = 180.0
