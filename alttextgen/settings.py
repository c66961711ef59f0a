"""Settings form: which fields to show, and validated saving of options."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Mapping

from alttextgen.handler import provider_service
from alttextgen.models import FieldRenderer
from alttextgen.providers.catalog import (
    LANGUAGES,
    OPTION_LANGUAGE,
    OPTION_PROVIDER,
    PROVIDERS,
    option_key,
)

if TYPE_CHECKING:
    from alttextgen.config import ConfigResolver
    from alttextgen.container import ServiceContainer
    from alttextgen.storage import OptionStore

logger = logging.getLogger(__name__)

MASKED_VALUE = "********"


@dataclass
class FormField:
    """A rendered settings field with its current value and choices."""

    key: str
    label: str
    renderer: FieldRenderer
    value: str = ""
    choices: dict[str, str] = field(default_factory=dict)


class SettingsPage:
    """Builds the settings form for the active provider and saves submissions."""

    def __init__(
        self,
        options: OptionStore,
        resolver: ConfigResolver,
        container: ServiceContainer,
        *,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._options = options
        self._resolver = resolver
        self._container = container
        self._on_change = on_change

    def fields(self) -> list[FormField]:
        provider_id = self._resolver.provider()
        fields = [
            FormField(
                key=OPTION_PROVIDER,
                label="AI provider",
                renderer=FieldRenderer.PROVIDER,
                value=provider_id,
                choices={pid: info.display_name for pid, info in PROVIDERS.items()},
            ),
        ]

        provider = self._container.get(provider_service(provider_id))
        for setting in provider.describe_settings() if provider is not None else []:
            form_field = FormField(key=setting.key, label=setting.label, renderer=setting.renderer)
            if setting.renderer == FieldRenderer.API_KEY:
                form_field.value = MASKED_VALUE if self._options.get(setting.key) else ""
            elif setting.renderer == FieldRenderer.MODEL:
                form_field.value = self._resolver.model(provider_id)
                form_field.choices = self._resolver.model_options(provider_id)
            fields.append(form_field)

        fields.append(FormField(
            key=OPTION_LANGUAGE,
            label="Preferred language",
            renderer=FieldRenderer.LANGUAGE,
            value=self._options.get(OPTION_LANGUAGE),
            choices={"": "Detect from site language", **LANGUAGES},
        ))
        return fields

    def save(self, values: Mapping[str, str]) -> list[str]:
        """Validate and store submitted values; returns the keys changed.

        Raises ``ValueError`` for unregistered keys or invalid choices;
        nothing is stored in that case.
        """
        provider_id = str(values.get(OPTION_PROVIDER) or self._resolver.provider()).strip().lower()
        if provider_id not in PROVIDERS:
            raise ValueError(f"Unknown provider: {provider_id!r}")

        api_key_name = option_key("api_key", provider_id)
        model_name = option_key("model", provider_id)
        allowed = {OPTION_PROVIDER, OPTION_LANGUAGE, api_key_name, model_name}
        unknown = sorted(set(values) - allowed)
        if unknown:
            raise ValueError(f"Unknown setting(s): {', '.join(unknown)}")

        updates: dict[str, str] = {}
        for key, raw in values.items():
            value = str(raw if raw is not None else "").strip()
            if key == OPTION_PROVIDER:
                value = provider_id
            elif key == model_name and value and value not in PROVIDERS[provider_id].models:
                raise ValueError(f"Model {value!r} is not available for {provider_id}")
            elif key == OPTION_LANGUAGE and value and value not in LANGUAGES:
                raise ValueError(f"Unsupported language: {value!r}")
            elif key == api_key_name and value == MASKED_VALUE:
                continue
            updates[key] = value

        for key, value in updates.items():
            if value:
                self._options.update(key, value)
            else:
                self._options.delete(key)
        self._options.save()

        # Never log values: they include API keys.
        logger.info("Settings saved | keys=%s", ",".join(sorted(updates)))
        if updates and self._on_change is not None:
            self._on_change()
        return sorted(updates)
