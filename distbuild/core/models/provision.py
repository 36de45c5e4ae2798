"""
Provisioning request — the OS account the installed application runs as.
"""

from __future__ import annotations

from pydantic import BaseModel


class ProvisionRequest(BaseModel):
    """Group and user to ensure, plus the user's home directory."""

    group_name: str
    user_name: str
    install_path: str
