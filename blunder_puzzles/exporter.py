"""
exporter.py - Formatação dos puzzles verificados e exportação para PGN.
"""
import os

import chess
import chess.pgn

from blunder_puzzles.models import AlternativeFinalMoves, Puzzle, SingleMove

RESULT_DRAW = "draw"
RESULT_MATE = "mate"
RESULT_MATERIAL = "material"


def side_name(color):
    return "Brancas" if color == chess.WHITE else "Pretas"


def puzzle_title(solver, target):
    """Título a partir do lado que resolve e da classe do resultado."""
    side = side_name(solver)
    if not target.is_mate and target.value == 0:
        return f"{side} jogam e empatam", RESULT_DRAW
    if target.is_mate:
        return f"{side} jogam e dão mate em {target.mate_moves}", RESULT_MATE
    return f"{side} jogam e ganham material", RESULT_MATERIAL


def solution_san(fen, steps):
    """
    Converte os passos da solução para SAN. A notação depende da posição, então cada
    lance é convertido no momento em que é jogado; as alternativas finais compartilham
    a posição que precede o último passo.
    """
    board = chess.Board(fen)
    solution = []
    for step in steps:
        if isinstance(step, SingleMove):
            solution.append(board.san(step.move))
            board.push(step.move)
        elif isinstance(step, AlternativeFinalMoves):
            solution.append([board.san(move) for move in step.moves])
        else:
            raise TypeError(f"Passo de solução desconhecido: {step!r}")
    return solution


def format_puzzle(candidate, steps, record=None):
    """Monta o registro do puzzle a partir do candidato e da solução verificada."""
    board_before = chess.Board(candidate.fen_before)
    mistake = board_before.san(candidate.move)
    board_after = candidate.board_after()
    fen = board_after.fen()

    title, result = puzzle_title(board_after.turn, candidate.evaluation)
    solution = solution_san(fen, steps)

    source = {"ply": candidate.ply}
    if record is not None:
        source.update({
            "game": record.key,
            "site": record.headers.get("Site", "?"),
            "event": record.headers.get("Event", "?"),
            "white": record.headers.get("White", "?"),
            "black": record.headers.get("Black", "?"),
        })

    return Puzzle(
        fen=fen,
        solution=solution,
        responses=[{} for _ in solution],
        title=title,
        side="white" if board_after.turn == chess.WHITE else "black",
        result=result,
        source=source,
        mistake=mistake,
        before_blunder_fen=candidate.fen_before,
    )


def puzzle_to_game(puzzle, index=None):
    """
    Converte um puzzle (dicionário do arquivo de resultados) em uma partida PGN.
    Alternativas finais viram variações; o lance documentado fica na linha principal.
    """
    fen = puzzle["fen"]
    board = chess.Board(fen)
    game = chess.pgn.Game()
    game.setup(board)
    game.headers["Event"] = puzzle.get("title", f"Puzzle {index}")
    source = puzzle.get("source", {})
    game.headers["Site"] = source.get("site", "?")
    game.headers["White"] = source.get("white", "?")
    game.headers["Black"] = source.get("black", "?")
    game.headers["Result"] = "*"
    if index is not None:
        game.headers["Round"] = str(index)

    node = game
    for step in puzzle["solution"]:
        if isinstance(step, list):
            main = node.board().parse_san(step[-1])
            main_node = node.add_main_variation(main)
            for san in step[:-1]:
                node.add_variation(node.board().parse_san(san))
            node = main_node
        else:
            node = node.add_main_variation(node.board().parse_san(step))
    return game


def export_pgn(puzzles, output_path):
    """Exporta uma lista de puzzles para um arquivo PGN."""
    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as pgn_file:
        for idx, puzzle in enumerate(puzzles, start=1):
            game = puzzle_to_game(puzzle, idx)
            exporter = chess.pgn.FileExporter(pgn_file)
            game.accept(exporter)
            pgn_file.write("\n\n")
