"""
ParaCore - Extension Registry
=============================

Mapping manifest.id -> Extension, beim Start aus einer bekannten
Modul-Liste befüllt. Jedes Modul exportiert ein Attribut `extension`.

Registrierung prüft die Form der Extension (Capability-Check), lehnt
doppelte IDs ab und ruft on_register() genau einmal nach erfolgreichem
Laden auf. Wirft der Hook, wird die Registrierung zurückgenommen.

Usage:
    registry = ExtensionRegistry()
    registry.load_builtin()

    manager = CodeManager()
    ref = registry.activate_tool("base-box", manager, {"width": 20})
"""

import importlib
import re
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from loguru import logger

from extensions.base import (
    Extension,
    ExtensionCategory,
    ExtensionManifest,
    ExtensionRegistrationError,
    Tool,
)

_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+([-+][0-9A-Za-z.-]+)?$")
_ID_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")


class ExtensionRegistry:
    """Validierte Extensions, nach Manifest-ID."""

    def __init__(self):
        self._extensions: Dict[str, Extension] = {}

        # Modulname -> Fehlermeldung der fehlgeschlagenen Loads
        self._load_errors: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._extensions)

    def __contains__(self, extension_id: str) -> bool:
        return extension_id in self._extensions

    def __iter__(self) -> Iterator[Extension]:
        return iter(list(self._extensions.values()))

    @property
    def load_errors(self) -> Dict[str, str]:
        return dict(self._load_errors)

    def get(self, extension_id: str) -> Extension:
        try:
            return self._extensions[extension_id]
        except KeyError:
            raise KeyError(f"Extension '{extension_id}' is not registered") from None

    def tools(self) -> List[Tool]:
        return [ext.tool for ext in self._extensions.values() if ext.tool is not None]

    # --- Registrierung ---

    def register(self, extension: Extension) -> Extension:
        """
        Validiert und registriert eine Extension.

        Raises:
            ExtensionRegistrationError: Form ungültig, ID doppelt oder
                on_register() fehlgeschlagen
        """
        self._validate(extension)

        ext_id = extension.manifest.id
        if ext_id in self._extensions:
            raise ExtensionRegistrationError(ext_id, "id is already registered")

        self._extensions[ext_id] = extension
        if extension.on_register is not None:
            try:
                extension.on_register()
            except Exception as e:
                del self._extensions[ext_id]
                raise ExtensionRegistrationError(ext_id, f"on_register failed: {e}") from e

        logger.info(f"Extension '{ext_id}' v{extension.manifest.version} registriert")
        return extension

    def unregister(self, extension_id: str) -> Extension:
        extension = self.get(extension_id)
        del self._extensions[extension_id]
        logger.info(f"Extension '{extension_id}' entfernt")
        return extension

    def load_module(self, module_name: str) -> Extension:
        """
        Importiert ein Modul und registriert dessen `extension`.

        Raises:
            ImportError: Modul nicht importierbar
            ExtensionRegistrationError: kein/ungültiges `extension` Attribut
        """
        module = importlib.import_module(module_name)
        extension = getattr(module, "extension", None)
        if extension is None:
            raise ExtensionRegistrationError(module_name, "module does not export 'extension'")
        return self.register(extension)

    def load_modules(self, module_names: Iterable[str]) -> List[Extension]:
        """
        Lädt mehrere Module. Fehler einzelner Module werden geloggt und in
        load_errors gesammelt, die übrigen Module werden trotzdem geladen.
        """
        loaded = []
        for module_name in module_names:
            try:
                loaded.append(self.load_module(module_name))
            except ExtensionRegistrationError as e:
                self._load_errors[module_name] = str(e)
                logger.error(f"Extension-Modul '{module_name}' nicht geladen: {e}")
            except Exception as e:
                # Import-Fehler, Fehler beim Ausführen des Moduls (z.B. ungültiger UiProperty-Default)
                self._load_errors[module_name] = f"{type(e).__name__}: {e}"
                logger.exception(f"Extension-Modul '{module_name}' nicht geladen: {e}")
        return loaded

    def load_builtin(self) -> List[Extension]:
        """Lädt die mitgelieferten Extensions."""
        from extensions.builtin import BUILTIN_EXTENSIONS
        return self.load_modules(BUILTIN_EXTENSIONS)

    def activate_tool(self, extension_id: str, code_manager,
                      params: Optional[Mapping[str, Any]] = None):
        """Aktiviert das Tool einer Extension gegen einen CodeManager."""
        extension = self.get(extension_id)
        if extension.tool is None:
            raise ExtensionRegistrationError(extension_id, "extension has no tool")
        return extension.tool.activate(code_manager, params)

    # --- Capability-Check ---

    def _validate(self, extension: Any):
        if not isinstance(extension, Extension):
            raise ExtensionRegistrationError(repr(extension), "not an Extension")

        manifest = extension.manifest
        if not isinstance(manifest, ExtensionManifest):
            raise ExtensionRegistrationError(repr(manifest), "manifest is not an ExtensionManifest")

        ext_id = manifest.id
        if not isinstance(ext_id, str) or not _ID_RE.match(ext_id):
            raise ExtensionRegistrationError(str(ext_id), "id must be lowercase kebab-case")
        if not manifest.name or not manifest.name.strip():
            raise ExtensionRegistrationError(ext_id, "name must not be empty")
        if not _VERSION_RE.match(manifest.version or ""):
            raise ExtensionRegistrationError(ext_id, f"invalid version '{manifest.version}'")
        if not isinstance(manifest.category, ExtensionCategory):
            raise ExtensionRegistrationError(ext_id, f"unknown category {manifest.category!r}")
        if extension.on_register is not None and not callable(extension.on_register):
            raise ExtensionRegistrationError(ext_id, "on_register is not callable")

        tool = extension.tool
        if tool is not None:
            if not isinstance(tool, Tool):
                raise ExtensionRegistrationError(ext_id, "tool is not a Tool")
            if not callable(tool.create):
                raise ExtensionRegistrationError(ext_id, "tool.create is not callable")
            keys = [prop.key for prop in tool.ui_properties]
            if len(keys) != len(set(keys)):
                raise ExtensionRegistrationError(ext_id, "duplicate ui property keys")
