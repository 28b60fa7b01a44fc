"""
Score Validator — a second, independently written score fold.

Recomputes every log entry's scoreboard from plain integer point counts
and reports each field that disagrees with what the engine logged.
"""

from __future__ import annotations

from rallylog.models.match import LogEntry, Match, OutcomeKind, Side

LABELS = ("0", "15", "30", "40")
PLAYERS = (Side.PLAYER1, Side.PLAYER2)


def _idx(side: Side) -> int:
    return PLAYERS.index(side)


class _Fold:
    def __init__(self, match: Match):
        cfg = match.settings
        self.cfg = cfg
        self.sets_needed = cfg.number_of_sets // 2 + 1
        self.sets = [0, 0]
        self.games = [0, 0]
        self.points = [0, 0]
        self.tb: list[int] | None = None
        self.tb_super = False
        self.set_no = 0
        self.over = False
        self.winner: int | None = None
        self.server = 0
        self.attempt = 1
        self._start_set()

    def _start_set(self) -> None:
        self.set_no += 1
        self.games = [0, 0]
        self.points = [0, 0]
        opener = _idx(self.cfg.first_server)
        self.server = opener if self.set_no % 2 == 1 else 1 - opener
        self.attempt = 1
        deciding = self.set_no == self.cfg.number_of_sets
        if deciding and self.cfg.final_set_type.value == "super_tie_break":
            self.tb, self.tb_super = [0, 0], True
        else:
            self.tb, self.tb_super = None, False

    # ── Derived views ────────────────────────────────────────────────────────

    def break_point(self) -> bool:
        if self.tb is not None or self.over:
            return False
        r, s = self.points[1 - self.server], self.points[self.server]
        if self.cfg.ad_scoring:
            return r >= 3 and r > s
        return r == 3

    def game_label(self) -> tuple[str, bool]:
        if self.over:
            return "0-0", False
        if self.tb is not None:
            return f"{self.tb[0]}-{self.tb[1]}", True
        a, b = self.points
        if self.cfg.ad_scoring and a >= 3 and b >= 3:
            if a == b:
                return "40-40", False
            return ("AD-40", False) if a > b else ("40-AD", False)
        return f"{LABELS[a]}-{LABELS[b]}", False

    # ── Transitions ──────────────────────────────────────────────────────────

    def point(self, w: int) -> str:
        """Apply a won point; returns the games score of the set it was played in."""
        self.attempt = 1
        if self.tb is not None:
            return self._tiebreak_point(w)
        self.points[w] += 1
        mine, theirs = self.points[w], self.points[1 - w]
        won = mine >= 4 and (mine - theirs >= 2 if self.cfg.ad_scoring else True)
        if not won:
            return self.games_text()
        self.points = [0, 0]
        self.games[w] += 1
        self.server = 1 - self.server
        gps = self.cfg.games_per_set
        if self.games[w] >= gps and self.games[w] - self.games[1 - w] >= 2:
            return self._set_won(w)
        if self.games == [gps, gps]:
            self.tb = [0, 0]
        return self.games_text()

    def _tiebreak_point(self, w: int) -> str:
        self.tb[w] += 1
        if self.tb_super:
            target, by2 = self.cfg.super_tie_break_target, self.cfg.super_tie_break_win_by_2
        else:
            target, by2 = self.cfg.tie_break_target, self.cfg.tie_break_win_by_2
        lead = self.tb[w] - self.tb[1 - w]
        if self.tb[w] >= target and lead >= (2 if by2 else 1):
            self.games[w] += 1
            return self._set_won(w)
        if sum(self.tb) % 2 == 1:
            self.server = 1 - self.server
        return self.games_text()

    def _set_won(self, w: int) -> str:
        final_games = self.games_text()
        self.sets[w] += 1
        if self.sets[w] >= self.sets_needed:
            self.over, self.winner = True, w
            opener = _idx(self.cfg.first_server)
            self.server = opener if (self.set_no + 1) % 2 == 1 else 1 - opener
            self.attempt = 1
            self.tb = None
        else:
            self._start_set()
        return final_games

    def games_text(self) -> str:
        return f"{self.games[0]}-{self.games[1]}"


class ScoreValidator:
    """Replays a log with integer arithmetic and lists every disagreement."""

    def validate(self, match: Match) -> list[str]:
        fold = _Fold(match)
        errors: list[str] = []

        for entry in match.log:
            seq = entry.sequence_number
            if fold.over:
                errors.append(f"#{seq}: entry after match end")
                break
            self._check(errors, seq, "server", entry.server, PLAYERS[fold.server])
            self._check(errors, seq, "serve_attempt", entry.serve_attempt, fold.attempt)
            self._check(errors, seq, "is_break_point", entry.is_break_point, fold.break_point())
            self._check(errors, seq, "set_number", entry.set_number, fold.set_no)

            games_after = self._apply(errors, fold, entry)

            label, in_tb = fold.game_label()
            self._check(errors, seq, "game_score", entry.game_score, label)
            self._check(errors, seq, "is_tie_break", entry.is_tie_break, in_tb)
            self._check(errors, seq, "games_score", entry.games_score, games_after)
            self._check(errors, seq, "sets_score", entry.sets_score, f"{fold.sets[0]}-{fold.sets[1]}")
            self._check(errors, seq, "next_server", entry.next_server, PLAYERS[fold.server])
            self._check(errors, seq, "next_serve_attempt", entry.next_serve_attempt, fold.attempt)

        expected_winner = PLAYERS[fold.winner] if fold.winner is not None else None
        if match.winner is not expected_winner:
            errors.append(f"match winner: logged {match.winner}, recomputed {expected_winner}")
        if match.is_completed != fold.over:
            errors.append(f"match status: logged {match.status.value}, recomputed over={fold.over}")
        return errors

    def _apply(self, errors: list[str], fold: _Fold, entry: LogEntry) -> str:
        seq = entry.sequence_number
        server = PLAYERS[fold.server]
        if entry.outcome is OutcomeKind.SERVE_FAULT:
            self._check(errors, seq, "winner", entry.winner, None)
            fold.attempt = 2
            return fold.games_text()
        if entry.outcome is OutcomeKind.DOUBLE_FAULT:
            self._check(errors, seq, "winner", entry.winner, server.opponent)
        elif entry.outcome in (OutcomeKind.ACE, OutcomeKind.RETURN_ERROR):
            self._check(errors, seq, "winner", entry.winner, server)
        if entry.winner is None:
            errors.append(f"#{seq}: resolved outcome {entry.outcome.value} has no winner")
            return fold.games_text()
        return fold.point(_idx(entry.winner))

    @staticmethod
    def _check(errors: list[str], seq: int, field: str, logged, expected) -> None:
        if logged != expected:
            errors.append(f"#{seq} {field}: logged {logged!r}, recomputed {expected!r}")
