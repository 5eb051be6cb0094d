"""Trace session controller — idempotent create/start/stop/remove of the capture session."""

from __future__ import annotations

import logging

from vfpwatch.trace.base import TraceBackend, TraceSessionError
from vfpwatch.trace.models import SessionDescriptor

logger = logging.getLogger(__name__)


class TraceSessionController:
    """Owns the named capture session described by a SessionDescriptor.

    Every operation checks the session's current state first, so calling
    it again (or after a crashed run left a session behind) is harmless.
    """

    def __init__(self, backend: TraceBackend, descriptor: SessionDescriptor) -> None:
        self._backend = backend
        self._descriptor = descriptor

    @property
    def descriptor(self) -> SessionDescriptor:
        return self._descriptor

    @property
    def name(self) -> str:
        return self._descriptor.name

    def ensure_started(self) -> None:
        """Create the session if absent, then start it if not already running.

        Raises TraceSessionError if the session cannot be created, a
        provider cannot be registered, or the session cannot be started.
        """
        name = self.name
        if self._backend.session_exists(name):
            logger.info("Reusing existing trace session '%s'", name)
        else:
            logger.info(
                "Creating trace session '%s' -> %s", name, self._descriptor.file_path
            )
            self._backend.create_session(self._descriptor)
            try:
                for provider in self._descriptor.providers:
                    logger.debug("Adding provider '%s' to '%s'", provider, name)
                    self._backend.add_provider(name, provider)
            except TraceSessionError:
                # Don't leave a session without its providers for the next
                # run to pick up as "already exists".
                self._discard_partial_session()
                raise

        if self._backend.session_running(name):
            logger.debug("Trace session '%s' already running", name)
            return
        self._backend.start_session(name)
        logger.info("Trace session '%s' started", name)

    def stop(self) -> None:
        """Stop the session if it exists and is running."""
        name = self.name
        if not self._backend.session_exists(name):
            logger.debug("Trace session '%s' absent — nothing to stop", name)
            return
        if not self._backend.session_running(name):
            logger.debug("Trace session '%s' already stopped", name)
            return
        self._backend.stop_session(name)
        logger.info("Trace session '%s' stopped", name)

    def remove(self) -> None:
        """Remove the session entirely, stopping it first if needed."""
        name = self.name
        if not self._backend.session_exists(name):
            logger.debug("Trace session '%s' absent — nothing to remove", name)
            return
        if self._backend.session_running(name):
            self._backend.stop_session(name)
        self._backend.remove_session(name)
        logger.info("Trace session '%s' removed", name)

    def status(self) -> str:
        """Return 'running', 'stopped' or 'absent'."""
        name = self.name
        if not self._backend.session_exists(name):
            return "absent"
        return "running" if self._backend.session_running(name) else "stopped"

    def _discard_partial_session(self) -> None:
        try:
            self._backend.remove_session(self.name)
        except TraceSessionError as exc:
            logger.warning(
                "Could not remove partially created session '%s': %s", self.name, exc
            )
