import logging
import os
from typing import Any

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.staticfiles import StaticFiles

from atlas.core.pins import PinValidationError, parse_pins, pins_to_payload
from atlas.services.content_service import ContentService
from atlas.services.cover_position_repository import (
    CoverPositionRepository,
    normalize_key,
)
from atlas.services.json_store import StoreError
from atlas.services.pin_repository import PinRepository, PinStoreError
from atlas.webserver import auth
from atlas.webserver.config import ServerConfig

logger = logging.getLogger(__name__)


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def create_app(config: ServerConfig) -> FastAPI:
    """
    Factory function to create the FastAPI app with the given configuration.
    """
    app = FastAPI(title="Atlas Map Server")

    pins = PinRepository(config.data_dir)
    covers = CoverPositionRepository(config.data_dir)
    content = ContentService(config.content_dir)

    app.state.config = config
    app.state.pins = pins
    app.state.covers = covers
    app.state.content = content

    if os.path.isdir(config.map_dir):
        app.mount("/maps", StaticFiles(directory=config.map_dir), name="maps")
    else:
        logger.warning(f"Map directory {config.map_dir} not found; /maps disabled")

    # -------------------------------------------------------------------------
    # Pins
    # -------------------------------------------------------------------------

    @app.get("/api/world-map-pins")
    def get_pins() -> dict[str, Any]:
        try:
            return pins_to_payload(pins.read_all())
        except PinStoreError as e:
            logger.error(f"Error reading pins: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @app.post("/api/world-map-pins")
    async def save_pins(request: Request) -> dict[str, Any]:
        """
        Replace the stored pin collection. Admin only.
        """
        auth.require_admin(config, request)
        body = await _read_json(request)
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Expected an object with 'pins'")
        try:
            parsed = parse_pins(body.get("pins"))
        except PinValidationError as e:
            logger.warning(f"Rejected pin payload: {e}")
            raise HTTPException(status_code=400, detail=str(e))
        try:
            stored = pins.replace_all(parsed)
        except OSError as e:
            logger.error(f"Error writing pins: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to save pins")
        return {"ok": True, **pins_to_payload(stored)}

    # -------------------------------------------------------------------------
    # Cover positions
    # -------------------------------------------------------------------------

    @app.post("/api/cover-position")
    async def set_cover_position(request: Request) -> dict[str, Any]:
        auth.require_admin(config, request)
        body = await _read_json(request)
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")

        category, slug = body.get("category"), body.get("slug")
        x, y = body.get("x"), body.get("y")
        if not (isinstance(category, str) and category and isinstance(slug, str) and slug):
            raise HTTPException(status_code=400, detail="category and slug are required")
        if not (_is_number(x) and _is_number(y)):
            raise HTTPException(status_code=400, detail="x and y must be numbers")

        try:
            x, y = float(x), float(y)
        except OverflowError:
            raise HTTPException(status_code=400, detail="x and y must be finite")

        key = normalize_key(category, slug)
        try:
            position = covers.set(key, x, y)
        except StoreError as e:
            logger.error(f"Error reading cover positions: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        except OSError as e:
            logger.error(f"Error writing cover position: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to save cover position")
        return {"ok": True, "key": key, "position": position.to_dict()}

    @app.get("/api/cover-position/{category}/{slug}")
    def get_cover_position(category: str, slug: str) -> dict[str, Any]:
        key = normalize_key(category, slug)
        try:
            position = covers.get(key)
        except StoreError as e:
            logger.error(f"Error reading cover positions: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        if position is None:
            raise HTTPException(status_code=404, detail=f"No cover position for {key}")
        return {"key": key, "position": position.to_dict()}

    # -------------------------------------------------------------------------
    # Admin session
    # -------------------------------------------------------------------------

    @app.get("/api/admin/status")
    def admin_status(request: Request) -> dict[str, bool]:
        return {"authenticated": auth.is_admin_request(config, request)}

    @app.post("/api/admin/login")
    async def admin_login(request: Request, response: Response) -> dict[str, bool]:
        if not config.admin_password:
            logger.error("Login attempted but ADMIN_PASSWORD is not configured")
            raise HTTPException(status_code=500, detail="Admin password is not configured")

        body = await _read_json(request)
        password = body.get("password") if isinstance(body, dict) else None
        if not isinstance(password, str) or not auth.check_password(config, password):
            logger.warning("Rejected admin login")
            raise HTTPException(status_code=401, detail="Invalid password")

        response.set_cookie(
            key=config.cookie_name,
            value=auth.issue_token(config),
            max_age=config.cookie_max_age,
            httponly=True,
            samesite="lax",
            secure=config.secure_cookies,
            path="/",
        )
        logger.info("Admin logged in")
        return {"ok": True}

    @app.post("/api/admin/logout")
    def admin_logout(response: Response) -> dict[str, bool]:
        response.delete_cookie(key=config.cookie_name, path="/")
        logger.info("Admin logged out")
        return {"ok": True}

    # -------------------------------------------------------------------------
    # Lore content
    # -------------------------------------------------------------------------

    @app.get("/api/entries")
    def get_entries() -> dict[str, Any]:
        return {"entries": [s.to_dict() for s in content.get_summaries()]}

    @app.get("/api/categories")
    def get_categories() -> dict[str, list[str]]:
        return {"categories": content.get_categories()}

    @app.get("/api/lore/{category}")
    def get_category(category: str) -> dict[str, Any]:
        entries = content.get_entries_by_category(category)
        if not entries:
            raise HTTPException(status_code=404, detail=f"Unknown category '{category}'")
        return {
            "category": category,
            "entries": [e.summary().to_dict() for e in entries],
        }

    @app.get("/api/lore/{category}/{slug}")
    def get_entry(category: str, slug: str) -> dict[str, Any]:
        entry = content.get_entry(category, slug)
        if entry is None:
            raise HTTPException(status_code=404, detail=f"No entry {category}/{slug}")
        try:
            cover = covers.get(normalize_key(category, slug))
        except StoreError as e:
            logger.warning(f"Cover position unavailable for {category}/{slug}: {e}")
            cover = None
        return {
            "category": entry.category,
            "slug": entry.slug,
            "title": entry.title,
            "order": entry.order,
            "metadata": entry.metadata,
            "html": ContentService.render_html(entry),
            "coverPosition": cover.to_dict() if cover else None,
        }

    @app.get("/health")
    def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return app
