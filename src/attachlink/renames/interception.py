"""Adapters that observe every rename pathway of a reference library."""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from attachlink.config.models import AttachmentSettings
from attachlink.library import ReferenceLibrary
from attachlink.library.models import Item
from attachlink.paths import strip_extension

from .memory import RenameObserver

LOGGER = logging.getLogger(__name__)

_MISSING = object()


class HostAdapter:
    """Replace one library entry point with a wrapper and restore it on demand."""

    attribute: str = ""

    def __init__(self, library: ReferenceLibrary, observer: RenameObserver) -> None:
        self._library = library
        self._observer = observer
        self._previous: Any = _MISSING
        self._installed = False

    @property
    def installed(self) -> bool:
        """Whether the wrapper currently replaces the library entry point."""
        return self._installed

    def install(self) -> None:
        """Shadow the entry point on the library instance with :meth:`wrap`.

        Calling it again while installed does nothing.
        """
        if self._installed:
            return
        self._previous = self._library.__dict__.get(self.attribute, _MISSING)
        original = getattr(self._library, self.attribute)
        setattr(self._library, self.attribute, self.wrap(original))
        self._installed = True
        LOGGER.debug("%s.%s overridden", type(self._library).__name__, self.attribute)

    def uninstall(self) -> None:
        """Restore the entry point that was in place before :meth:`install`."""
        if not self._installed:
            return
        if self._previous is _MISSING:
            delattr(self._library, self.attribute)
        else:
            setattr(self._library, self.attribute, self._previous)
        self._previous = _MISSING
        self._installed = False

    def wrap(self, original: Callable[..., Any]) -> Callable[..., Any]:
        """Return a replacement for ``original`` that reports renames to the observer.

        Args:
            original: Entry point currently bound on the library.

        Returns:
            Callable[..., Any]: Wrapper with the same call signature.
        """
        raise NotImplementedError


class FileRenameAdapter(HostAdapter):
    """Record every low-level file rename, whether or not the name changed."""

    attribute = "rename_file"

    def wrap(self, original: Callable[..., Optional[str]]) -> Callable[..., Optional[str]]:
        @functools.wraps(original)
        def rename_file(path: Any, new_name: str, **kwargs: Any) -> Optional[str]:
            source = Path(path).absolute()
            LOGGER.debug("Attempting to rename file %s to %s", source, new_name)
            result = original(path, new_name, **kwargs)
            # Fall back to the original name when the rename did not happen.
            filename = result or source.name
            self._observer.rename_observed(None, str(source.parent / filename), filename)
            return result

        return rename_file


class AttachmentRenameAdapter(HostAdapter):
    """Record attachment renames, forcing a modify notification for same-name renames."""

    attribute = "rename_attachment_file"

    def wrap(self, original: Callable[..., Any]) -> Callable[..., Any]:
        library = self._library

        @functools.wraps(original)
        def rename_attachment_file(item: Item, new_name: str, **kwargs: Any) -> Any:
            original_path = library.get_file_path(item)
            if original_path is None:
                LOGGER.debug("Attachment file not found for item %s", item.id)
                return False

            with library.notifier.deferred():
                if original_path.name == new_name:
                    LOGGER.debug("Filename of item %s unchanged; forcing modify", item.id)
                    library.relink_attachment_file(item, original_path)
                    library.save_item(item, notify_unchanged=True)
                    self._observer.rename_observed(item.id, str(original_path), new_name)
                    return True

                result = original(item, new_name, **kwargs)
                if result is True:
                    self._observer.rename_observed(
                        item.id, str(original_path.parent / new_name), new_name
                    )
                return result

        return rename_attachment_file


class AutoTitleAdapter(HostAdapter):
    """Replace automatic titles with the extension-stripped filename while sync is enabled."""

    attribute = "set_auto_attachment_title"

    def __init__(
        self,
        library: ReferenceLibrary,
        observer: RenameObserver,
        settings: AttachmentSettings,
    ) -> None:
        super().__init__(library, observer)
        self._settings = settings

    def wrap(self, original: Callable[..., None]) -> Callable[..., None]:
        library = self._library

        @functools.wraps(original)
        def set_auto_attachment_title(item: Item, **kwargs: Any) -> None:
            if not self._settings.sync_filename_and_title:
                return original(item, **kwargs)

            filename = item.attachment_filename
            if filename:
                item.title = strip_extension(filename)
                library.save_item(item)
                LOGGER.debug("Title of item %s set to %r", item.id, item.title)
            return None

        return set_auto_attachment_title


class RenameInterceptionLayer:
    """Install the three rename adapters on a library as one unit."""

    def __init__(
        self,
        library: ReferenceLibrary,
        observer: RenameObserver,
        settings: AttachmentSettings,
    ) -> None:
        self.adapters: list[HostAdapter] = [
            FileRenameAdapter(library, observer),
            AttachmentRenameAdapter(library, observer),
            AutoTitleAdapter(library, observer, settings),
        ]

    @property
    def installed(self) -> bool:
        return all(adapter.installed for adapter in self.adapters)

    def install(self) -> None:
        """Install every adapter; already installed adapters are left alone."""
        for adapter in self.adapters:
            adapter.install()

    def uninstall(self) -> None:
        """Remove the adapters in reverse order of installation."""
        for adapter in reversed(self.adapters):
            adapter.uninstall()


__all__ = [
    "AttachmentRenameAdapter",
    "AutoTitleAdapter",
    "FileRenameAdapter",
    "HostAdapter",
    "RenameInterceptionLayer",
]
