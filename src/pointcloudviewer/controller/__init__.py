"""
Load Orchestration
==================
Glue between the pure pipeline (model) and the GUI (view).

Why is this package needed?
---------------------------
1. Generations: It tags every file load with an id so results from a
   superseded load can never reach the screen.
2. Threading: It runs file decoding and the pipeline off the GUI thread.

Note: session.py is pure Python; only workers.py imports PySide6.
"""
