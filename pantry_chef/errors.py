from __future__ import annotations

from enum import Enum


class RecipeServiceError(Exception):
    status_code = 500


class ValidationError(RecipeServiceError):
    """Missing or malformed required input."""

    status_code = 400


class ExtractionFailure(str, Enum):
    EMPTY_PAGE = "empty_page"
    NO_INGREDIENTS_FOUND = "no_ingredients_found"


class ExtractionError(RecipeServiceError):
    def __init__(self, kind: ExtractionFailure, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        # An empty page is the caller's problem, anything else is ours
        self.status_code = 400 if kind is ExtractionFailure.EMPTY_PAGE else 500


class SynthesisFailure(str, Enum):
    INCOMPLETE_RESPONSE = "incomplete_response"
    MALFORMED_JSON = "malformed_json"


class SynthesisError(RecipeServiceError):
    def __init__(self, kind: SynthesisFailure, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class StoreError(RecipeServiceError):
    pass
