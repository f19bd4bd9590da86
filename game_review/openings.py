"""Opening name lookup by FEN.

The database is an ordered JSON list of ``{"fen": ..., "name": ...}``
records, where ``fen`` is usually just the piece-placement field. A
position is named after the first record whose ``fen`` occurs in the
position's FEN.

Usage:
    from game_review.openings import OpeningsDB
    db = OpeningsDB()
    name = db.identify("rnbqkbnr/pp1ppppp/8/2p5/4P3/8/PPPP1PPP/RNBQKBNR w KQkq c6 0 2")
"""

import json
import os

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
_PROJECT_ROOT = os.path.dirname(_PACKAGE_DIR)
_DEFAULT_OPENINGS = os.path.join(_PROJECT_ROOT, "data", "openings.json")


class OpeningsDB:
    """Ordered opening database queried by substring containment.

    Degrades to an empty database when the JSON file is missing or
    unreadable, so reviews still run without opening names.
    """

    def __init__(self, path=None, openings=None):
        self._path = path or os.environ.get("GAME_REVIEW_OPENINGS") or _DEFAULT_OPENINGS
        if openings is not None:
            self._openings = [o for o in openings if self._is_record(o)]
        else:
            self._openings = self._load()

    def __len__(self):
        return len(self._openings)

    @staticmethod
    def _is_record(item):
        return (
            isinstance(item, dict)
            and isinstance(item.get("fen"), str)
            and isinstance(item.get("name"), str)
            and item["fen"] != ""
        )

    def _load(self):
        """Load records from the JSON file. Returns empty list if unavailable."""
        if not os.path.exists(self._path):
            return []
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError):
            return []
        if not isinstance(data, list):
            return []
        return [item for item in data if self._is_record(item)]

    def identify(self, fen):
        """Name the opening a FEN belongs to.

        Args:
            fen: Full or partial FEN string.

        Returns:
            Opening name of the first matching record, or None.
        """
        for opening in self._openings:
            if opening["fen"] in fen:
                return opening["name"]
        return None
