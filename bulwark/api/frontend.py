"""Static assets and single-page-app fallback."""

from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from bulwark.api.deps import get_app_settings
from bulwark.core.config import Settings
from bulwark.core.errors import NotFoundError

router = APIRouter(include_in_schema=False)

INDEX_FILE = "index.html"


def resolve_public_file(public_dir: Path, request_path: str) -> Path | None:
    """Map a URL path to a file under ``public_dir``.

    Returns None for missing files and for anything resolving outside the
    directory (``..`` segments, absolute paths, symlinks pointing out).
    """
    root = public_dir.resolve()
    relative = request_path.lstrip("/") or INDEX_FILE
    candidate = (root / relative).resolve()
    if not candidate.is_relative_to(root):
        return None
    if not candidate.is_file():
        return None
    return candidate


@router.api_route("/{full_path:path}", methods=["GET", "HEAD"])
async def serve_frontend(full_path: str, settings: Settings = Depends(get_app_settings)) -> FileResponse:
    """Serve a file from the public directory, else the SPA shell for client routes."""
    if full_path == "api" or full_path.startswith("api/"):
        raise NotFoundError("Not found")

    public_dir = Path(settings.public_dir)
    file_path = resolve_public_file(public_dir, full_path)
    if file_path is None:
        file_path = resolve_public_file(public_dir, INDEX_FILE)
    if file_path is None:
        raise NotFoundError("Not found")
    return FileResponse(file_path)
