"""
Sync session model — a file-synchronization session between two endpoints.

Only the declaration lives here.  Creating and running the session is
the job of the external sync tool.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from devbox.core.errors import MissingFieldError


class SyncSessionSpec(BaseModel):
    """Endpoints and options for one sync session.

    ``alpha`` is the local side, ``beta`` the remote side.  Addresses
    may be empty for local paths; the paths themselves are required.
    """

    alpha_address: str = ""
    alpha_path: str = ""
    beta_address: str = ""
    beta_path: str = ""
    name: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    paused: bool = False
    sync_mode: str = ""
    ignore_vcs: bool = False

    def validate_paths(self) -> None:
        """Raise MissingFieldError if either endpoint path is empty."""
        if not self.alpha_path:
            raise MissingFieldError("alpha path")
        if not self.beta_path:
            raise MissingFieldError("beta path")
