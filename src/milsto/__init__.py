"""milsto: track milestones with live countdowns from the terminal."""

__version__ = "0.1.0"
