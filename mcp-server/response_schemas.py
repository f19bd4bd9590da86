"""Response schemas and minification for MCP tool responses.

Minifies game review reports to reduce LLM context token waste: engine
lines and FENs are dropped, each move keeps only its SAN, UCI,
classification, best move and opening name.

The move list is returned as numbered PGN text (1.e4 e5 2.Nf3 ...),
the notation an agent reads most easily.
"""

from __future__ import annotations

import os


# ---------------------------------------------------------------------------
# Minification functions
# ---------------------------------------------------------------------------


def minify_report(report: dict) -> dict:
    """Minify a GameReport dict for MCP response.

    Args:
        report: Full report dict (as produced by GameReport.to_dict).

    Returns:
        Dict with rounded accuracies, a PGN move string and one compact
        entry per move.
    """
    accuracies = report.get("accuracies", {})
    result = {
        "accuracies": {
            "white": round(accuracies.get("white", 0.0), 1),
            "black": round(accuracies.get("black", 0.0), 1),
        },
    }

    positions = report.get("positions", [])
    moves = []
    for ply, position in enumerate(positions[1:], 1):
        move = position.get("move") or {}
        previous_lines = positions[ply - 1].get("topLines") or []
        best = next((line for line in previous_lines if line.get("id") == 1), None)

        entry = {
            "ply": ply,
            "san": move.get("san", ""),
            "uci": move.get("uci", ""),
            "classification": position.get("classification"),
        }
        if best is not None and best.get("moveSAN"):
            entry["best_move_san"] = best["moveSAN"]
        if position.get("opening"):
            entry["opening"] = position["opening"]
        moves.append(entry)

    result["move_list"] = _moves_to_pgn_string([m["san"] for m in moves])
    result["moves"] = moves
    return result


def minify_positions(positions: list[dict]) -> dict:
    """Minify a parsed position list: FENs and UCI moves only.

    Engine lines are kept when present so the list can be fed back
    into generate_report.
    """
    result = []
    for position in positions:
        item = {"fen": position.get("fen")}
        if position.get("move"):
            item["move"] = position["move"]
        if position.get("topLines"):
            item["topLines"] = position["topLines"]
        if position.get("worker"):
            item["worker"] = position["worker"]
        result.append(item)
    return {"positions": result, "count": len(result)}


# ---------------------------------------------------------------------------
# Move list as PGN text
# ---------------------------------------------------------------------------


def _moves_to_pgn_string(moves: list[str]) -> str:
    """Join SAN moves into numbered PGN text, e.g. ``1.e4 e5 2.Nf3``."""
    parts = []
    for ply, san in enumerate(moves):
        parts.append(f"{ply // 2 + 1}.{san}" if ply % 2 == 0 else san)
    return " ".join(parts)


# ---------------------------------------------------------------------------
# Response schemas: key -> expected type (or tuple of types)
# ---------------------------------------------------------------------------

POSITIONS_SCHEMA = {
    "positions": list,
    "count": int,
}

REPORT_SCHEMA = {
    "accuracies": dict,
    "move_list": str,
    "moves": list,
}

FULL_REPORT_SCHEMA = {
    "accuracies": dict,
    "positions": list,
}

OPENING_SCHEMA = {
    "fen": str,
    "opening": (str, type(None)),
}

ERROR_SCHEMA = {
    "error": str,
}


def _type_names(expected) -> str:
    if isinstance(expected, tuple):
        return "(" + ", ".join(t.__name__ for t in expected) + ")"
    return expected.__name__


def validate_response(response: dict, schema: dict) -> list[str]:
    """Check a tool response against one of the schemas above.

    Skipped unless GAME_REVIEW_VALIDATE=1.

    Returns:
        Error strings, empty when the response conforms.
    """
    if os.environ.get("GAME_REVIEW_VALIDATE") != "1":
        return []
    if not isinstance(response, dict):
        return [f"Response is not a dict: {type(response).__name__}"]

    errors = []
    for key, expected in schema.items():
        if key not in response:
            errors.append(f"Missing key: {key}")
        elif not isinstance(response[key], expected):
            errors.append(
                f"Key '{key}': expected {_type_names(expected)}, "
                f"got {type(response[key]).__name__}"
            )
    return errors
