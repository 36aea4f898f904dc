"""Assembly context: the owner/contact/stage values applied to every definition.

The library only ever receives an explicit :class:`AssemblyContext`. The
environment is consulted by :func:`context_from_env`, which the CLI calls.
"""

from __future__ import annotations

import getpass
import os

from pydantic import BaseModel

DEFAULT_STAGE = "dev"


class AssemblyContext(BaseModel):
    owner: str
    contact: str = ""
    stage: str = DEFAULT_STAGE

    def tags(self) -> dict[str, str]:
        tags = {"Owner": self.owner}
        if self.contact:
            tags["Contact"] = self.contact
        return tags


def context_from_env(
    *,
    owner: str | None = None,
    contact: str | None = None,
    stage: str | None = None,
    contact_domain: str | None = None,
) -> AssemblyContext:
    """Build a context from explicit values, then env vars, then the login user.

    Resolution order per field:
    1. The explicit argument
    2. ``PIPEWRIGHT_OWNER`` / ``PIPEWRIGHT_CONTACT`` / ``PIPEWRIGHT_STAGE``
    3. The login user for *owner*, ``<owner>@<contact_domain>`` for *contact*,
       and ``dev`` for *stage*
    """
    owner = owner or os.environ.get("PIPEWRIGHT_OWNER") or getpass.getuser()
    contact = contact or os.environ.get("PIPEWRIGHT_CONTACT")
    if not contact and contact_domain:
        contact = f"{owner}@{contact_domain}"
    stage = stage or os.environ.get("PIPEWRIGHT_STAGE") or DEFAULT_STAGE
    return AssemblyContext(owner=owner, contact=contact or "", stage=stage)
