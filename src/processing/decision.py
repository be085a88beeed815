"""
Processing Decision Engine Module.

Final routing of a document from its text confidence, its data
confidence and the validation outcome of its data:

    AUTO_APPROVE        text >= 0.9, data >= 0.9, validation passed,
                        required fields present
    REVIEW_RECOMMENDED  text >= 0.8, data >= 0.7, no validation errors
    MANUAL_REVIEW       text >= 0.6, data >= 0.5
    MANUAL_PROCESSING   everything else

Overall confidence weighs the data above the text:
overall = 0.4 * text + 0.6 * data.

Author: ML Engineering Team
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from src.utils.helpers import clamp
from src.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


class ProcessingDecision(str, Enum):
    """How a processed document should be handled."""
    AUTO_APPROVE = "auto_approve"
    REVIEW_RECOMMENDED = "review_recommended"
    MANUAL_REVIEW = "manual_review"
    MANUAL_PROCESSING = "manual_processing"


class ProcessingStatus(str, Enum):
    """Terminal status of a processed document."""
    READY_FOR_AUTO_PROCESSING = "ready_for_auto_processing"
    READY_FOR_REVIEW = "ready_for_review"
    REQUIRES_MANUAL_REVIEW = "requires_manual_review"
    REQUIRES_MANUAL_PROCESSING = "requires_manual_processing"
    TEXT_EXTRACTION_FAILED = "text_extraction_failed"
    DATA_EXTRACTION_FAILED = "data_extraction_failed"
    PROCESSING_ERROR = "processing_error"

    @property
    def is_failure(self) -> bool:
        return self in FAILURE_STATUSES


FAILURE_STATUSES = {
    ProcessingStatus.TEXT_EXTRACTION_FAILED,
    ProcessingStatus.DATA_EXTRACTION_FAILED,
    ProcessingStatus.PROCESSING_ERROR,
}

DECISION_STATUS = {
    ProcessingDecision.AUTO_APPROVE: ProcessingStatus.READY_FOR_AUTO_PROCESSING,
    ProcessingDecision.REVIEW_RECOMMENDED: ProcessingStatus.READY_FOR_REVIEW,
    ProcessingDecision.MANUAL_REVIEW: ProcessingStatus.REQUIRES_MANUAL_REVIEW,
    ProcessingDecision.MANUAL_PROCESSING: ProcessingStatus.REQUIRES_MANUAL_PROCESSING,
}


@dataclass(frozen=True)
class DecisionOutcome:
    """Decision with the status and overall confidence it implies."""
    decision: ProcessingDecision
    status: ProcessingStatus
    overall_confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'decision': self.decision.value,
            'status': self.status.value,
            'overall_confidence': self.overall_confidence,
        }


class ProcessingDecisionEngine:
    """
    Pure decision function over confidences and validation state.

    Example:
        >>> engine = ProcessingDecisionEngine()
        >>> engine.decide(0.95, 0.92, validation_passed=True, only_warnings=True,
        ...               has_required_fields=True).decision
        <ProcessingDecision.AUTO_APPROVE: 'auto_approve'>
    """

    AUTO_TEXT = 0.9
    AUTO_DATA = 0.9
    REVIEW_TEXT = 0.8
    REVIEW_DATA = 0.7
    MANUAL_REVIEW_TEXT = 0.6
    MANUAL_REVIEW_DATA = 0.5

    TEXT_WEIGHT = 0.4
    DATA_WEIGHT = 0.6

    def decide(
        self,
        text_confidence: float,
        data_confidence: float,
        validation_passed: bool,
        only_warnings: bool,
        has_required_fields: bool
    ) -> DecisionOutcome:
        """
        Decide how a document is handled.

        Args:
            text_confidence: Final text confidence (0-1).
            data_confidence: Data confidence (0-1).
            validation_passed: Validation found no errors.
            only_warnings: Validation found warnings at most.
            has_required_fields: Invoice number, total and a date are present.

        Returns:
            DecisionOutcome with decision, status and overall confidence.
        """
        text_confidence = clamp(text_confidence)
        data_confidence = clamp(data_confidence)

        if (text_confidence >= self.AUTO_TEXT and data_confidence >= self.AUTO_DATA
                and validation_passed and has_required_fields):
            decision = ProcessingDecision.AUTO_APPROVE
        elif (text_confidence >= self.REVIEW_TEXT and data_confidence >= self.REVIEW_DATA
                and (validation_passed or only_warnings)):
            decision = ProcessingDecision.REVIEW_RECOMMENDED
        elif text_confidence >= self.MANUAL_REVIEW_TEXT and data_confidence >= self.MANUAL_REVIEW_DATA:
            decision = ProcessingDecision.MANUAL_REVIEW
        else:
            decision = ProcessingDecision.MANUAL_PROCESSING

        overall = self.overall_confidence(text_confidence, data_confidence)
        logger.debug(
            f"Decision: {decision.value} (text={text_confidence:.2f}, "
            f"data={data_confidence:.2f}, overall={overall:.2f})"
        )
        return DecisionOutcome(decision=decision, status=DECISION_STATUS[decision], overall_confidence=overall)

    def overall_confidence(self, text_confidence: float, data_confidence: float) -> float:
        return clamp(self.TEXT_WEIGHT * clamp(text_confidence) + self.DATA_WEIGHT * clamp(data_confidence))
