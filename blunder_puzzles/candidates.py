# blunder_puzzles/candidates.py
import logging

from blunder_puzzles import detector
from blunder_puzzles.models import PuzzleCandidate

logger = logging.getLogger(__name__)

REASON_HORIZON = "efeito horizonte"
REASON_ALREADY_WINNING = "lado já estava ganho"
REASON_NOT_DECISIVE = "vantagem não decisiva"


def rejection_reason(event, winner_max, decisive_min):
    """
    Aplica os filtros a um blunder e devolve o motivo da rejeição, ou None se ele passar.
    """
    # 1. A origem do erro é anterior a este lance
    if event.horizon_effect:
        return REASON_HORIZON

    # 2. O lado já tinha vantagem esmagadora e continuou com ela: não houve reviravolta
    before, after = event.before, event.after
    if before.sign == after.sign and abs(before.value) > winner_max:
        return REASON_ALREADY_WINNING

    # 3. Depois do erro a vantagem precisa ser decisiva, a menos que seja mate forçado
    if not after.is_mate and abs(after.value) < decisive_min:
        return REASON_NOT_DECISIVE

    return None


def generate_candidates(events, winner_max, decisive_min):
    """
    Converte blunders em candidatos a puzzle.
    Retorna (candidatos, motivos de rejeição).
    """
    candidates = []
    rejections = []

    for event in events:
        reason = rejection_reason(event, winner_max, decisive_min)
        if reason:
            logger.debug("Descartado (%s): %s", reason, detector.describe(event))
            rejections.append(reason)
            continue

        candidates.append(PuzzleCandidate(
            fen_before=event.fen_before,
            move=event.move,
            line=event.punish_pv,
            evaluation=event.after,
            ply=event.ply,
        ))

    return candidates, rejections
