"""Round-trip identity registry for content markdown cannot express.

Media attachments and inline cards have no faithful markdown form.  While
rendering ADF to markdown the renderer remembers the original sub-trees
here (media keyed by attachment id, cards keyed by URL); a later build from
the edited markdown splices those very node objects back in when it meets
``{attachment:ID}`` or a link to a known card URL.

The registry is caller-owned and never global.  Use one registry per
document unless identities are meant to be shared.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field

from adf_bridge.adf.model import Node

logger = logging.getLogger(__name__)


class IdentityRegistry:
    """Attachment-id and card-URL maps to original ADF sub-trees."""

    def __init__(
        self,
        media: dict[str, Node] | None = None,
        cards: dict[str, Node] | None = None,
    ) -> None:
        self._media: dict[str, Node] = dict(media or {})
        self._cards: dict[str, Node] = dict(cards or {})

    def remember_media(self, media_id: str, node: Node) -> None:
        self._media[media_id] = node

    def remember_card(self, url: str, node: Node) -> None:
        self._cards[url] = node

    def media_for(self, media_id: str) -> Node | None:
        return self._media.get(media_id)

    def card_for(self, url: str) -> Node | None:
        return self._cards.get(url)

    @property
    def media(self) -> dict[str, Node]:
        return dict(self._media)

    @property
    def cards(self) -> dict[str, Node]:
        return dict(self._cards)

    def __len__(self) -> int:
        return len(self._media) + len(self._cards)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class RegistrySnapshot(BaseModel):
    """Root model of the persisted registry file."""

    version: int = 1
    media: dict[str, Node] = Field(default_factory=dict)
    cards: dict[str, Node] = Field(default_factory=dict)


class RegistryStore:
    """Reads and writes an :class:`IdentityRegistry` as a JSON file.

    Lets the harvest (render) and the splice (build) happen in separate
    processes, e.g. ``adf-bridge to-markdown`` followed by an edit and
    ``adf-bridge to-adf``.

    Args:
        path: Location of the JSON registry file.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> IdentityRegistry:
        """Load the registry, returning an empty one if the file is missing or empty.

        Raises:
            pydantic.ValidationError: If the file exists but is not a valid snapshot.
        """
        if not self._path.exists() or self._path.stat().st_size == 0:
            logger.debug("No registry at %s, starting empty", self._path)
            return IdentityRegistry()
        raw = self._path.read_text(encoding="utf-8")
        snapshot = RegistrySnapshot.model_validate_json(raw)
        logger.debug(
            "Loaded %d media and %d card identities from %s",
            len(snapshot.media),
            len(snapshot.cards),
            self._path,
        )
        return IdentityRegistry(media=snapshot.media, cards=snapshot.cards)

    def save(self, registry: IdentityRegistry) -> None:
        """Write *registry* as pretty-printed JSON, creating parent directories."""
        snapshot = RegistrySnapshot(media=registry.media, cards=registry.cards)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            snapshot.model_dump_json(indent=2, exclude_defaults=True) + "\n",
            encoding="utf-8",
        )
