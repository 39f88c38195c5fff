from __future__ import annotations

QUIET = 0
NORMAL = 1
VERBOSE = 2
DEBUG = 3


class Console:
    """Plain stdout logger whose verbosity travels with the call, not the process."""

    def __init__(self, level: int = NORMAL) -> None:
        self.level = level

    @classmethod
    def from_flags(cls, verbose: bool = False, debug: bool = False) -> "Console":
        if debug:
            return cls(DEBUG)
        if verbose:
            return cls(VERBOSE)
        return cls(NORMAL)

    def info(self, *args, **kwargs) -> None:
        if self.level >= NORMAL:
            print(*args, **kwargs)

    def verbose(self, *args, **kwargs) -> None:
        """Prints if --verbose or --debug is set."""
        if self.level >= VERBOSE:
            print(*args, **kwargs)

    def debug(self, *args, **kwargs) -> None:
        """Prints only if --debug is set."""
        if self.level >= DEBUG:
            print(*args, **kwargs)

    def warning(self, message: str) -> None:
        print(f"  Warning: {message}")

    def error(self, message: str) -> None:
        print(f"Error: {message}")
