"""Two-tier secret gate for the admin surface.

Viewer access unlocks the spin log; editor access additionally unlocks
prize table mutations. The gate is a shared-secret comparison and not an
authentication system: deployments that need real accounts should put a
credential service in front of the workflows.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

logger = logging.getLogger(__name__)


class AccessLevel(IntEnum):
    """Ordered capability tiers; a higher tier implies the lower ones."""

    NONE = 0
    VIEWER = 1
    EDITOR = 2


class AccessDenied(PermissionError):
    """Raised when an operation needs a higher access tier."""

    def __init__(self, needed: AccessLevel, held: AccessLevel) -> None:
        super().__init__(
            f"{needed.name.lower()} access required (held: {held.name.lower()})"
        )
        self.needed = needed
        self.held = held


@dataclass(frozen=True)
class AccessConfig:
    """Secrets for each tier. A tier whose secret is ``None`` cannot be unlocked."""

    viewer_password: Optional[str] = None
    editor_password: Optional[str] = None

    def __repr__(self) -> str:
        return "AccessConfig(viewer_password={v}, editor_password={e})".format(
            v="***" if self.viewer_password else None,
            e="***" if self.editor_password else None,
        )


def _matches(candidate: str, secret: Optional[str]) -> bool:
    if not secret:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), secret.encode("utf-8"))


class AccessGate:
    """Map a presented secret to an :class:`AccessLevel`."""

    def __init__(self, config: AccessConfig) -> None:
        self._config = config

    def authenticate(self, secret: Optional[str]) -> AccessLevel:
        """Return the highest tier unlocked by ``secret``.

        Both secrets are always compared so the time taken does not reveal
        which tier matched.
        """

        if not secret:
            return AccessLevel.NONE
        is_editor = _matches(secret, self._config.editor_password)
        is_viewer = _matches(secret, self._config.viewer_password)
        if is_editor:
            level = AccessLevel.EDITOR
        elif is_viewer:
            level = AccessLevel.VIEWER
        else:
            level = AccessLevel.NONE
            logger.warning("Rejected admin secret")
        logger.debug(f"Admin gate granted {level.name} access")
        return level

    @staticmethod
    def require(held: AccessLevel, needed: AccessLevel) -> None:
        """Raise :class:`AccessDenied` unless ``held`` covers ``needed``."""

        if held < needed:
            raise AccessDenied(needed, held)


__all__ = ["AccessConfig", "AccessDenied", "AccessGate", "AccessLevel"]
