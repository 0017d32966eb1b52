"""
detector.py - Detecção de blunders a partir da análise lance a lance.

Função pura: não conversa com o motor, só compara avaliações consecutivas.
"""
import chess

from blunder_puzzles.models import BlunderEvent


def classify_transition(prev, cur, mover, magnitude):
    """
    Compara a avaliação antes e depois do lance de mover.
    Retorna (blunder, horizon_effect).

    horizon_effect indica que a nova avaliação favorece justamente quem jogou:
    a busca mais rasa da posição anterior não enxergou o problema, então o erro
    verdadeiro aconteceu antes deste lance e não dá para atribuí-lo com segurança.
    """
    horizon = cur.favors(mover)

    if prev.is_mate and cur.is_mate:
        # Mate forçado seguido corretamente: mesmo vencedor e um ply a menos
        progressed = prev.sign == cur.sign and abs(cur.mate) == abs(prev.mate) - 1
        return not progressed, False

    if prev.is_mate:
        # Perdeu um mate forçado
        return True, False

    if cur.is_mate:
        return True, horizon

    if abs(cur.value - prev.value) >= magnitude:
        return True, horizon

    return False, False


def find_blunders(entries, magnitude):
    """
    Percorre pares consecutivos (anterior, atual) da análise e devolve os blunders.
    A primeira entrada (posição inicial) não tem lance associado.
    """
    blunders = []

    for ply in range(1, len(entries)):
        prev = entries[ply - 1]
        cur = entries[ply]
        mover = not cur.turn

        blunder, horizon = classify_transition(prev.evaluation, cur.evaluation, mover, magnitude)
        if not blunder:
            continue

        blunders.append(BlunderEvent(
            move=cur.move,
            before=prev.evaluation,
            after=cur.evaluation,
            fen_before=cur.fen_before,
            expected_pv=prev.evaluation.pv,
            punish_pv=cur.evaluation.pv,
            horizon_effect=horizon,
            ply=ply,
        ))

    return blunders


def describe(event):
    """Texto curto para logs: lance, lado e variação da avaliação."""
    side = "Brancas" if event.mover == chess.WHITE else "Pretas"
    return f"{side} jogaram {event.move.uci()}: {event.before} → {event.after}"
