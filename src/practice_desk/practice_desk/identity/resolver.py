from __future__ import annotations

import logging

from .model import IdentitySet, Principal
from .repository import LegacyEmployeeDirectory, ProfileDirectory

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Collect every record id that refers to the same human as ``principal``.

    Older assignment records point at legacy employee ids, newer ones at
    profile ids or the auth subject id; all of them match the same person.
    A failing lookup degrades to the ids gathered so far.
    """

    def __init__(self, profiles: ProfileDirectory, employees: LegacyEmployeeDirectory):
        self._lookups = (("profiles", profiles), ("employees", employees))

    def resolve(self, principal: Principal) -> IdentitySet:
        extra: list[str] = []
        email = (principal.email or "").strip()
        if email:
            for name, directory in self._lookups:
                try:
                    extra.extend(directory.ids_for_email(email))
                except Exception as e:
                    logger.warning("identity lookup via %s failed for %s: %s", name, principal.subject_id, e)

        identities = IdentitySet(principal.subject_id, extra)
        logger.debug("resolved %s -> %r", principal.subject_id, identities)
        return identities
