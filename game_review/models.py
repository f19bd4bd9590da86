"""Shared data models for the game review pipeline.

Position and EngineLine are the shared contract between the parser,
the evaluation collaborator, the classification pipeline and the MCP
server. Dict conversion uses the camelCase keys of the JSON interchange
format (topLines, moveUCI, moveSAN, cutoffEvaluation).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from game_review.classification import Classification

CENTIPAWN = "cp"
MATE = "mate"


@dataclass
class Move:
    """The move that led to a position."""

    san: str
    uci: str


@dataclass
class Evaluation:
    """Engine evaluation, from White's point of view.

    ``value`` is centipawns for ``type == "cp"`` and moves-to-mate for
    ``type == "mate"``.
    """

    type: str
    value: int

    @property
    def is_mate(self) -> bool:
        return self.type == MATE

    def to_dict(self) -> dict:
        return {"type": self.type, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> Evaluation:
        eval_type = data["type"]
        if eval_type not in (CENTIPAWN, MATE):
            raise ValueError(f"Unknown evaluation type: {eval_type!r}")
        return cls(type=eval_type, value=int(data["value"]))


@dataclass
class EngineLine:
    """One ranked MultiPV line (id 1 is the engine's best move)."""

    id: int
    depth: int
    evaluation: Evaluation
    move_uci: str
    move_san: str | None = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "depth": self.depth,
            "evaluation": self.evaluation.to_dict(),
            "moveUCI": self.move_uci,
        }
        if self.move_san is not None:
            data["moveSAN"] = self.move_san
        return data

    @classmethod
    def from_dict(cls, data: dict) -> EngineLine:
        return cls(
            id=int(data["id"]),
            depth=int(data.get("depth", 0)),
            evaluation=Evaluation.from_dict(data["evaluation"]),
            move_uci=data.get("moveUCI") or "",
            move_san=data.get("moveSAN"),
        )


@dataclass
class Position:
    """A game position with its engine lines and review annotations."""

    fen: str
    move: Move | None = None
    top_lines: list[EngineLine] = field(default_factory=list)
    cutoff_evaluation: Evaluation | None = None
    classification: Classification | None = None
    opening: str | None = None
    worker: str | None = None

    @property
    def mover_is_white(self) -> bool:
        """True when White played the move that produced this position.

        The FEN records whose turn is next, so the flag is inverted.
        """
        return " b " in self.fen

    def get_line(self, line_id: int) -> EngineLine | None:
        """Return the engine line with the given rank, if present."""
        for line in self.top_lines:
            if line.id == line_id:
                return line
        return None

    def to_dict(self) -> dict:
        data: dict = {"fen": self.fen}
        if self.move is not None:
            data["move"] = {"san": self.move.san, "uci": self.move.uci}
        data["topLines"] = [line.to_dict() for line in self.top_lines]
        if self.cutoff_evaluation is not None:
            data["cutoffEvaluation"] = self.cutoff_evaluation.to_dict()
        if self.classification is not None:
            data["classification"] = self.classification.value
        if self.opening is not None:
            data["opening"] = self.opening
        if self.worker is not None:
            data["worker"] = self.worker
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Position:
        move = None
        if data.get("move"):
            move = Move(san=data["move"].get("san", ""), uci=data["move"]["uci"])

        cutoff = None
        if data.get("cutoffEvaluation"):
            cutoff = Evaluation.from_dict(data["cutoffEvaluation"])

        classification = None
        if data.get("classification"):
            classification = Classification(data["classification"])

        return cls(
            fen=data["fen"],
            move=move,
            top_lines=[EngineLine.from_dict(d) for d in data.get("topLines") or []],
            cutoff_evaluation=cutoff,
            classification=classification,
            opening=data.get("opening"),
            worker=data.get("worker"),
        )


@dataclass
class InfluencingPiece:
    """A piece attacking or defending a square. Transient query result."""

    square: int
    color: bool
    piece_type: int


@dataclass
class GameReport:
    """Per-side accuracy percentages plus the annotated positions."""

    accuracies: dict = field(default_factory=lambda: {"white": 0.0, "black": 0.0})
    positions: list[Position] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "accuracies": dict(self.accuracies),
            "positions": [p.to_dict() for p in self.positions],
        }


def positions_from_dicts(items: list[dict]) -> list[Position]:
    """Build Position objects from a list of interchange dicts."""
    return [Position.from_dict(item) for item in items]
