"""Static asset serving with single-page-app fallback."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Request, status
from fastapi.responses import FileResponse, JSONResponse, Response

from cardhub_gateway.api.cors import cors_headers
from cardhub_gateway.api.dependencies import SettingsDep

INDEX_DOCUMENT = "index.html"
FALLBACK_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

router = APIRouter(include_in_schema=False)


def _not_found() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"success": False, "message": "Not Found"},
    )


def resolve_asset(static_dir: str, request_path: str) -> Path | None:
    """Return the file to serve for ``request_path``, or None.

    Existing files are served as-is. Paths without a file extension fall back
    to the SPA entry document so client-side routes survive a reload.
    """
    root = Path(static_dir).resolve()
    relative = request_path.lstrip("/")
    candidate = (root / relative).resolve()
    if candidate != root and root not in candidate.parents:
        return None
    if candidate.is_file():
        return candidate
    if candidate.is_dir() and (candidate / INDEX_DOCUMENT).is_file():
        return candidate / INDEX_DOCUMENT
    if "." not in relative:
        index = root / INDEX_DOCUMENT
        if index.is_file():
            return index
    return None


@router.api_route("/{full_path:path}", methods=FALLBACK_METHODS)
async def serve_static(full_path: str, request: Request, settings: SettingsDep) -> Response:
    """Serve frontend assets for any path not claimed by the API.

    Bare OPTIONS requests get the CORS headers; other non-GET methods on
    unclaimed paths are a JSON 404.
    """
    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_200_OK, headers=cors_headers(settings))
    if request.method not in ("GET", "HEAD") or not settings.static_dir:
        return _not_found()
    asset = resolve_asset(settings.static_dir, full_path)
    if asset is None:
        return _not_found()
    return FileResponse(asset)
