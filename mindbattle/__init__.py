"""MindBattle trivia contest platform backend."""
