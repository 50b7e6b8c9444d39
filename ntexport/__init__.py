"""ntexport — export a Next Terminal database to a portable JSON backup."""

__version__ = "0.1.0"
