"""Exception types raised by cubescan."""


class CubeScanError(Exception):
    """Base class for every error raised by this package."""


class InvalidMoveError(CubeScanError, ValueError):
    """Move notation outside the F/B/U/D/L/R [' | 2] grammar."""


class IncompleteStateError(CubeScanError):
    """A cube state lacks the face data a move needs."""


class InvalidFaceError(CubeScanError, ValueError):
    """Unknown face name, bad grid shape or unknown color name."""
