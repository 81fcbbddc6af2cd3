"""Application-link validation and the link quality score."""

from src.validate.link_validator import (
    DEFAULT_QUALITY_THRESHOLD,
    REASON_BELOW_THRESHOLD,
    REASON_INVALID_URL,
    REASON_NETWORK_ERROR,
    LinkValidator,
    ValidationResult,
    is_valid_link,
)
from src.validate.scoring import COMPONENTS, ValidationInputs, score_link
from src.validate.weights import QualityWeights

__all__ = [
    "COMPONENTS",
    "DEFAULT_QUALITY_THRESHOLD",
    "LinkValidator",
    "QualityWeights",
    "REASON_BELOW_THRESHOLD",
    "REASON_INVALID_URL",
    "REASON_NETWORK_ERROR",
    "ValidationInputs",
    "ValidationResult",
    "is_valid_link",
    "score_link",
]
