# Cohorte: persona-simulated, line-anchored feedback for scripts.
