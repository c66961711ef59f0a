"""FastAPI application exposing the alt text generation endpoint.

Callers authenticate with ``Authorization: Bearer <token>``; the token is
looked up in ``access_tokens`` and the user's capabilities in ``users``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from alttextgen.config import GatewayConfig
from alttextgen.container import ServiceContainer
from alttextgen.models import Caller
from alttextgen.providers import list_available
from alttextgen.providers.catalog import PROVIDERS
from alttextgen.security import ACTION_GENERATE, CAP_MANAGE_OPTIONS, CAP_UPLOAD_FILES
from alttextgen.services import build_container

_bearer = HTTPBearer(auto_error=False)


def _caller(request: Request, config: GatewayConfig,
            credentials: Optional[HTTPAuthorizationCredentials]) -> Caller:  # noqa: UP007
    """Identify the caller from the bearer token and the client address.

    An absent or unknown token gives an anonymous caller with no capabilities.
    """
    user_id = config.user_for_token(credentials.credentials) if credentials else ""
    origin = request.client.host if request.client else "unknown"
    return Caller(user_id=user_id, origin=origin, capabilities=config.capabilities_for(user_id))


def create_app(config: GatewayConfig | None = None, container: ServiceContainer | None = None) -> FastAPI:
    """Create and return the FastAPI application."""
    config = config or GatewayConfig.load()
    container = container or build_container(config)
    app = FastAPI(title="alttextgen", docs_url=None, redoc_url=None)
    app.state.container = container

    def current_caller(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),  # noqa: UP007
    ) -> Caller:
        return _caller(request, config, credentials)

    def require(capability: str, caller: Caller) -> None:
        if not caller.user_id or not caller.can(capability):
            raise HTTPException(status_code=403, detail="You do not have permission to do that.")

    @app.post(f"/ajax/{ACTION_GENERATE}")
    async def generate_alt(request: Request, caller: Caller = Depends(current_caller)) -> JSONResponse:
        """Generate alt text for one attachment.

        Form fields: ``nonce``, ``attachment_id``.
        """
        form = await request.form()
        handler = container.get("request_handler")
        if handler is None:
            return JSONResponse({"success": False, "data": "The AI service is not available."}, 500)
        response = await handler.handle_single(caller, form)
        return JSONResponse(response.payload, status_code=response.status_code)

    @app.post("/api/nonce")
    async def issue_nonce(caller: Caller = Depends(current_caller)) -> dict:
        """Issue a single-use token for the generate action."""
        require(CAP_UPLOAD_FILES, caller)
        return {"nonce": container.get("tokens").issue(ACTION_GENERATE, caller.user_id)}

    @app.get("/api/attachments/{attachment_id}")
    async def attachment_status(attachment_id: int) -> dict:
        """Alt text, AI marker and generate/regenerate action for an attachment."""
        status = container.get("media").status(attachment_id)
        if status is None:
            raise HTTPException(status_code=404, detail="Attachment not found")
        return status

    @app.get("/api/settings")
    async def get_settings(caller: Caller = Depends(current_caller)) -> dict:
        require(CAP_MANAGE_OPTIONS, caller)
        fields = container.get("settings").fields()
        return {
            "fields": [
                {
                    "key": f.key,
                    "label": f.label,
                    "renderer": f.renderer.value,
                    "value": f.value,
                    "choices": f.choices,
                }
                for f in fields
            ]
        }

    @app.post("/api/settings")
    async def save_settings(values: dict[str, str], caller: Caller = Depends(current_caller)) -> dict:
        require(CAP_MANAGE_OPTIONS, caller)
        try:
            changed = container.get("settings").save(values)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        return {"saved": changed}

    @app.get("/api/providers")
    async def get_providers() -> dict:
        """Return the provider catalog with availability."""
        resolver = container.get("resolver")
        available = dict(list_available({pid: resolver.api_key(pid) for pid in PROVIDERS}))
        return {
            "active": resolver.provider(),
            "providers": [
                {
                    "name": pid,
                    "display_name": info.display_name,
                    "default_model": info.default_model,
                    "models": info.models,
                    "available": available.get(pid, False),
                }
                for pid, info in PROVIDERS.items()
            ],
        }

    return app
