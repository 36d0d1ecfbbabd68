"""Battleship AI opponent engine and fleet placement logic."""

__version__ = "0.1.0"
