"""
GuessFS - Core Package

A filesystem-guessing game: index part of a filesystem, pick files or
directories as answers, and score player guesses with fuzzy tolerance.
"""

__version__ = "0.1.0"
__author__ = "GuessFS Team"
