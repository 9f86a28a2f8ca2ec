"""
Selection and busy state for one user's bundling session.
"""

import logging
from collections.abc import Iterable

from catalog_bundler.bundle.assembler import Bundle, BundleAssembler
from catalog_bundler.exceptions import BundleInProgressError
from catalog_bundler.models.manifest import FileEntry, Manifest

log = logging.getLogger(__name__)


class BundleSession:
    """
    Holds the paths a user has selected and whether a bundle is being prepared.

    A second download request while one is in flight is rejected rather than
    queued.
    """

    def __init__(self, assembler: BundleAssembler):
        self.assembler = assembler
        self._selected: set[str] = set()
        self._busy = False

    @property
    def selection(self) -> frozenset[str]:
        return frozenset(self._selected)

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def can_download(self) -> bool:
        return not self._busy and bool(self._selected)

    def toggle(self, path: str) -> bool:
        """Flips the selection state of a path and returns the new state."""
        if path in self._selected:
            self._selected.discard(path)
            return False
        self._selected.add(path)
        return True

    def select(self, paths: Iterable[str]) -> None:
        self._selected.update(paths)

    def clear(self) -> None:
        self._selected.clear()

    async def download(
        self, view: Manifest | Iterable[FileEntry], on_progress=None
    ) -> Bundle:
        """
        Bundles the current selection against `view`.

        Raises:
            BundleInProgressError: If another download is still running.
            BundleEmptyError: If nothing could be bundled.
        """
        if self._busy:
            raise BundleInProgressError("A bundle is already being prepared.")

        snapshot = self.selection
        self._busy = True
        try:
            return await self.assembler.assemble(view, snapshot, on_progress)
        finally:
            self._busy = False
            log.debug("Bundle session is idle again.")
