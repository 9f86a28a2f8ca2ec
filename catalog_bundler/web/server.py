"""
A small aiohttp application that publishes the manifest and the catalog files
of a content root.
"""

import logging
from pathlib import Path

from aiohttp import web

from catalog_bundler.models.config import DEFAULT_MANIFEST_NAME
from catalog_bundler.utils.naming import has_allowed_extension, is_hidden, split_path

log = logging.getLogger(__name__)

CONTENT_ROOT_KEY = web.AppKey("content_root", Path)
MANIFEST_NAME_KEY = web.AppKey("manifest_name", str)


async def handle_manifest(request: web.Request) -> web.Response:
    """Serves the manifest, re-read on every request and never cached."""
    root = request.app[CONTENT_ROOT_KEY]
    manifest_path = root / request.app[MANIFEST_NAME_KEY]
    try:
        body = manifest_path.read_bytes()
    except OSError as e:
        log.warning(f"Manifest not available at '{manifest_path}': {e}")
        raise web.HTTPServiceUnavailable(text="Manifest has not been built.") from e
    return web.Response(
        body=body,
        content_type="application/json",
        headers={"Cache-Control": "no-store"},
    )


async def handle_file(request: web.Request) -> web.FileResponse:
    """Serves a single catalog file by its root-relative path."""
    root = request.app[CONTENT_ROOT_KEY]
    segments = split_path(request.match_info["path"])

    if (
        len(segments) < 2
        or any(is_hidden(segment) for segment in segments)
        or not has_allowed_extension(segments[-1])
    ):
        raise web.HTTPNotFound()

    target = root.joinpath(*segments).resolve()
    if not target.is_relative_to(root) or not target.is_file():
        raise web.HTTPNotFound()
    return web.FileResponse(target)


def create_app(
    content_root: Path | str, manifest_name: str = DEFAULT_MANIFEST_NAME
) -> web.Application:
    app = web.Application()
    app[CONTENT_ROOT_KEY] = Path(content_root).resolve()
    app[MANIFEST_NAME_KEY] = manifest_name
    app.router.add_get(f"/{manifest_name}", handle_manifest)
    app.router.add_get("/{path:.+}", handle_file)
    return app


def run_server(
    content_root: Path | str,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> None:
    """Blocks serving the content root until interrupted."""
    log.info(f"Serving '{content_root}' on http://{host}:{port}/")
    web.run_app(
        create_app(content_root, manifest_name),
        host=host,
        port=port,
        print=None,
    )
