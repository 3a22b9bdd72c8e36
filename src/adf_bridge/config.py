from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Callable

from pydantic import RootModel

from adf_bridge.converter.adf_to_markdown import DIALECTS

_MENTION_ID = re.compile(r"^@[^@\s]+@[^@\s]+$")


class UserMapping(RootModel[dict[str, str]]):
    """``@local@domain`` mention strings to opaque user ids."""


def load_user_mapping(path: str | Path) -> dict[str, str]:
    """Read and validate a JSON user mapping file."""
    raw = Path(path).read_text(encoding="utf-8")
    return UserMapping.model_validate_json(raw).root


def email_resolver(mapping: dict[str, str]) -> Callable[[str], str | None]:
    """Reverse *mapping* into a user id -> mention address resolver.

    Ids that already are mention addresses (what the builder falls back to
    for unmapped users) resolve to themselves.
    """
    reverse = {user_id: email for email, user_id in mapping.items()}

    def resolve(user_id: str) -> str | None:
        if user_id in reverse:
            return reverse[user_id]
        if _MENTION_ID.match(user_id):
            return user_id
        return None

    return resolve


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self) -> None:
        self.user_mapping_file: str = os.environ.get("ADF_BRIDGE_USER_MAPPING", "")
        self.dialect: str = os.environ.get("ADF_BRIDGE_DIALECT", "markdown")
        self.registry_file: str = os.environ.get("ADF_BRIDGE_REGISTRY_FILE", "")
        self.log_level: str = os.environ.get("ADF_BRIDGE_LOG_LEVEL", "WARNING")

    def validate(self) -> None:
        if self.dialect not in DIALECTS:
            raise ValueError(
                f"ADF_BRIDGE_DIALECT must be one of {', '.join(sorted(DIALECTS))}, "
                f"got {self.dialect!r}"
            )
        if self.user_mapping_file and not Path(self.user_mapping_file).is_file():
            raise ValueError(
                f"ADF_BRIDGE_USER_MAPPING points to a missing file: {self.user_mapping_file}"
            )

    def user_mapping(self) -> dict[str, str]:
        if not self.user_mapping_file:
            return {}
        return load_user_mapping(self.user_mapping_file)


settings = Settings()
