"""Extrator de puzzles de xadrez a partir de blunders em partidas PGN."""
