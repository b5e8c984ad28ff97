"""CORS policy shared by the middleware and the bare OPTIONS fallback."""

from cardhub_gateway.core.settings import Settings

ALLOW_METHODS = ["GET", "POST", "OPTIONS"]
ALLOW_HEADERS = ["Content-Type", "Authorization"]
MAX_AGE_SECONDS = 86400


def cors_headers(settings: Settings) -> dict[str, str]:
    """Headers for an OPTIONS request that is not a browser preflight."""
    origins = settings.cors_origins
    return {
        "Access-Control-Allow-Origin": "*" if "*" in origins or not origins else origins[0],
        "Access-Control-Allow-Methods": ", ".join(ALLOW_METHODS),
        "Access-Control-Allow-Headers": ", ".join(ALLOW_HEADERS),
        "Access-Control-Max-Age": str(MAX_AGE_SECONDS),
    }
