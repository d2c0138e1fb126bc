"""User-Agent string for Terraform-driven clients."""

from __future__ import annotations

import logging
import os

__all__ = ["terraform_user_agent", "APPEND_USER_AGENT_ENV"]

log = logging.getLogger(__name__)

APPEND_USER_AGENT_ENV = "TF_APPEND_USER_AGENT"


def terraform_user_agent(version: str, sdk_version: str) -> str:
    """Build the Terraform User-Agent, extended by ``TF_APPEND_USER_AGENT``."""
    ua = f"HashiCorp Terraform/{version} (+https://www.terraform.io)"
    if sdk_version:
        ua += f" Terraform Plugin SDK/{sdk_version}"

    extra = os.environ.get(APPEND_USER_AGENT_ENV, "").strip()
    if extra:
        ua += " " + extra
        log.debug("Using modified User-Agent: %s", ua)

    return ua