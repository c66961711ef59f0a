"""Request handler for the single-image alt text action.

A request moves RECEIVED -> AUTHENTICATED -> VALIDATED -> DISPATCHED ->
PERSISTED -> RESPONDED, or stops at REJECTED at any gate.  Responses use
the ``{success, data}`` shape with the HTTP status of the failure.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

from alttextgen.models import Caller, CaptionRequest, ErrorKind
from alttextgen.providers.catalog import META_ALT_GENERATED, META_ALT_TEXT
from alttextgen.security import ACTION_GENERATE, CAP_UPLOAD_FILES

if TYPE_CHECKING:
    from alttextgen.config import ConfigResolver
    from alttextgen.container import ServiceContainer
    from alttextgen.providers.base import CaptionProvider
    from alttextgen.security import TokenRegistry
    from alttextgen.storage import MediaLibrary

logger = logging.getLogger(__name__)


class RequestState(str, enum.Enum):
    RECEIVED = "received"
    AUTHENTICATED = "authenticated"
    VALIDATED = "validated"
    DISPATCHED = "dispatched"
    PERSISTED = "persisted"
    RESPONDED = "responded"
    REJECTED = "rejected"


_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.INVALID_INPUT: 400,
}


@dataclass
class AjaxResponse:
    """JSON body plus HTTP status for the caller."""

    status_code: int
    payload: dict[str, Any]
    state: RequestState
    kind: ErrorKind | None = None

    @classmethod
    def success(cls, data: dict[str, Any]) -> AjaxResponse:
        return cls(200, {"success": True, "data": data}, RequestState.RESPONDED)

    @classmethod
    def error(cls, kind: ErrorKind, message: str) -> AjaxResponse:
        return cls(
            _STATUS_BY_KIND.get(kind, 500),
            {"success": False, "data": message},
            RequestState.REJECTED,
            kind,
        )


def provider_service(provider_id: str) -> str:
    """Container service name for a provider instance."""
    return f"provider.{provider_id}"


def parse_image_id(raw: Any) -> int | None:
    """Coerce a submitted attachment id to a positive int, else None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    else:
        try:
            value = int(str(raw).strip())
        except ValueError:
            return None
    return value if value > 0 else None


class GenerateRequestHandler:
    """Handles one "generate alt text" request end to end."""

    def __init__(
        self,
        container: ServiceContainer,
        *,
        resolver: ConfigResolver,
        media: MediaLibrary,
        tokens: TokenRegistry,
    ) -> None:
        self._container = container
        self._resolver = resolver
        self._media = media
        self._tokens = tokens

    async def handle_single(self, caller: Caller, form: Mapping[str, Any]) -> AjaxResponse:
        """Run the request through every gate and return the response.

        Expected form fields: ``nonce`` and ``attachment_id``.
        """
        state = RequestState.RECEIVED

        token = str(form.get("nonce") or "")
        if not self._tokens.verify(token, ACTION_GENERATE, caller.user_id) \
                or not caller.can(CAP_UPLOAD_FILES):
            logger.warning(
                "Unauthorized alt generation attempt | user_id=%s ip=%s",
                caller.user_id or "anonymous", caller.origin,
            )
            return AjaxResponse.error(ErrorKind.UNAUTHORIZED, "You do not have permission to do that.")
        state = RequestState.AUTHENTICATED

        attachment_id = parse_image_id(form.get("attachment_id"))
        if attachment_id is None:
            logger.warning(
                "Invalid attachment ID in alt generation request | user_id=%s attachment_id=%r",
                caller.user_id, form.get("attachment_id"),
            )
            return AjaxResponse.error(ErrorKind.INVALID_INPUT, "Invalid attachment ID.")
        state = RequestState.VALIDATED
        logger.debug("Request %s | user_id=%s attachment_id=%s", state.value, caller.user_id, attachment_id)

        logger.info(
            "Starting single alt generation | attachment_id=%s user_id=%s",
            attachment_id, caller.user_id,
        )
        resolved = self._resolver.resolve()
        provider: CaptionProvider | None = self._container.get(provider_service(resolved.provider))
        if provider is None:
            logger.error("AI service not available | provider=%s", resolved.provider)
            return AjaxResponse.error(ErrorKind.SERVICE_UNAVAILABLE, "The AI service is not available.")
        state = RequestState.DISPATCHED

        request = CaptionRequest(image_id=attachment_id, language=resolved.language, model=resolved.model)
        result = await provider.generate(request.image_id, request.language, request.model)
        if not result.is_success:
            logger.error(
                "Alt generation failed | attachment_id=%s user_id=%s error_code=%s error_message=%s",
                attachment_id, caller.user_id, result.kind.value if result.kind else "", result.message,
            )
            return AjaxResponse.error(result.kind or ErrorKind.PROVIDER_ERROR, result.message)

        alt_text = result.text or ""
        try:
            self._persist(attachment_id, alt_text)
        except (OSError, LookupError) as exc:
            logger.error(
                "Could not save alt text | attachment_id=%s user_id=%s error=%s",
                attachment_id, caller.user_id, exc,
            )
            return AjaxResponse.error(ErrorKind.SERVICE_UNAVAILABLE, "Could not save the alt text.")
        state = RequestState.PERSISTED
        logger.debug("Request %s | user_id=%s attachment_id=%s", state.value, caller.user_id, attachment_id)

        logger.info(
            "Single alt generation completed successfully | attachment_id=%s user_id=%s alt_length=%d",
            attachment_id, caller.user_id, len(alt_text),
        )
        return AjaxResponse.success({"alt": alt_text})

    def _persist(self, attachment_id: int, alt_text: str) -> None:
        """Write the alt text and AI marker; metadata is unchanged on failure."""
        attachment = self._media.get(attachment_id)
        if attachment is None:
            raise LookupError(f"attachment {attachment_id} is not in the media library")
        previous = dict(attachment.meta)
        self._media.update_meta(attachment_id, META_ALT_TEXT, alt_text)
        self._media.update_meta(attachment_id, META_ALT_GENERATED, "1")
        try:
            self._media.save()
        except OSError:
            attachment.meta = previous
            raise
