"""Custom exceptions for configuration management."""

from typing import List, Optional


class ConfigurationError(Exception):
    """
    Raised when configuration from any source (file, environment, command line) is invalid.

    Carries every problem found in one pass plus hints for fixing them, so a
    single run reports all mistakes at once.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Args:
            message: Summary of what failed to load
            errors: Individual problems, one per offending value
            suggestions: Hints printed after the problems
        """
        self.message = message
        self.errors = list(errors or [])
        self.suggestions = list(suggestions or [])
        super().__init__(self.render())

    def render(self) -> str:
        """Numbered problems followed by hints, one per line."""
        lines = [self.message]

        if self.errors:
            lines.append("\nProblems:")
            lines.extend(f"  {i}. {error}" for i, error in enumerate(self.errors, 1))

        if self.suggestions:
            lines.append("\nHints:")
            lines.extend(f"  - {suggestion}" for suggestion in self.suggestions)

        return "\n".join(lines)
