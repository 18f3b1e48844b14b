"""
Card store.

One JSON document per card under <home>/cards/. Every write is a single
atomic replace of the card's file, validated against the card schema
first, so a patch either lands completely or not at all.
"""

import json
import logging
import os
import tempfile
from dataclasses import replace
from pathlib import Path

from squadboard.board.card import Card, utc_now, valid_card_id
from squadboard.lib.constants import LANES
from squadboard.lib.validate import validate_before_write

logger = logging.getLogger(__name__)


class CardStore:
    """File-backed card persistence."""

    def __init__(self, home: Path):
        self.cards_dir = home / "cards"

    def _path(self, card_id: str) -> Path:
        return self.cards_dir / f"{card_id}.json"

    def _write(self, card: Card) -> None:
        data = card.to_dict()
        path = self._path(card.id)
        validate_before_write(data, "card", path)

        self.cards_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{card.id}.", suffix=".tmp", dir=self.cards_dir)
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, card_id: str) -> Card | None:
        """Load a card, or None if it doesn't exist."""
        if not valid_card_id(card_id):
            return None
        path = self._path(card_id)
        if not path.exists():
            return None
        return Card.from_dict(json.loads(path.read_text()))

    def insert(self, card: Card) -> Card:
        if self._path(card.id).exists():
            raise FileExistsError(f"Card {card.id} already exists")
        self._write(card)
        logger.debug(f"[BOARD] Inserted card {card.id}")
        return card

    def update(self, card: Card, patch: dict) -> Card:
        """Apply ``patch`` to ``card`` in one atomic write and return the new card.

        An empty patch is a no-op that returns ``card`` unchanged.

        Raises:
            KeyError: If the patch names a field cards don't have.
        """
        if not patch:
            return card

        unknown = set(patch) - Card.field_names()
        if unknown:
            raise KeyError(f"Unknown card fields in patch: {sorted(unknown)}")

        updated = replace(card, **patch, updated_at=utc_now())
        self._write(updated)
        logger.debug(f"[BOARD] Updated card {card.id}: {sorted(patch)}")
        return updated

    def list(self, project_id: str | None = None) -> list[Card]:
        """All cards (optionally for one project) in squad, lane, position order."""
        if not self.cards_dir.exists():
            return []

        cards = []
        for path in self.cards_dir.glob("*.json"):
            try:
                card = Card.from_dict(json.loads(path.read_text()))
            except (json.JSONDecodeError, TypeError) as e:
                logger.warning(f"[BOARD] Skipping unreadable card {path.name}: {e}")
                continue
            if project_id is None or card.project_id == project_id:
                cards.append(card)

        lane_order = {lane: i for i, lane in enumerate(LANES)}
        # Newest first within a position, then stable by squad/lane/position
        cards.sort(key=lambda c: c.created_at, reverse=True)
        cards.sort(key=lambda c: (c.squad_id, lane_order.get(c.lane, len(LANES)), c.position))
        return cards

    def next_position(self, project_id: str, squad_id: str, lane: str) -> int:
        positions = [
            c.position for c in self.list(project_id)
            if c.squad_id == squad_id and c.lane == lane
        ]
        return max(positions) + 1 if positions else 0
