"""Error taxonomy for the analysis pipeline."""


class MealAnalyzerError(Exception):
    """Base class for pipeline errors."""


class ExtractionError(MealAnalyzerError):
    """The upstream extraction step failed; the request cannot proceed."""


class UnsupportedInputError(MealAnalyzerError):
    """An analyzer cannot handle the given kind of input."""


class RemoteApiRateLimitedError(MealAnalyzerError):
    """The remote nutrition API answered HTTP 429."""


class FoodNotFoundError(MealAnalyzerError):
    """A food id is unknown both locally and remotely."""

    def __init__(self, external_id: int) -> None:
        super().__init__(f"Food {external_id} not found")
        self.external_id = external_id


class QuotaExceededError(MealAnalyzerError):
    """The caller has no remaining analysis quota."""
