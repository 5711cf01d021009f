"""Coverage Grid Generator.

Turns scattered coordinates or a polygon boundary into a grid of coverage
points spaced by a chosen radius, inset from the polygon edge, and emits
the result as size-bounded batches of formatted lines.
"""

__version__ = "0.1.0"
