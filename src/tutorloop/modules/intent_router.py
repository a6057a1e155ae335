"""
Intent Router - first stage of the tutoring pipeline.

Asks the classification collaborator whether a turn is in the tutor's
domain and whether it needs retrieval, then enforces the result contract.
"""

from typing import Optional

from pydantic import ValidationError

from ..collaborators.protocols import Classifier
from ..core.config import TutorConfig, get_config
from ..exceptions import ClassificationError
from ..models.context import Session
from ..models.schemas import ClassificationRequest, ClassificationResult
from ..utils.error_handler import call_with_timeout
from ..utils.logging import get_logger

# Turns passed along so the classifier can resolve pronouns
RECENT_TURNS_FOR_CLASSIFICATION = 6


class IntentRouter:
    """
    Intent Router component.

    The router never repairs a bad classification: any failure, timeout or
    malformed result becomes a ClassificationError.
    """

    def __init__(self, classifier: Classifier, config: Optional[TutorConfig] = None):
        self.config = config or get_config()
        self.classifier = classifier
        self.logger = get_logger(__name__)

    def build_request(
        self,
        session: Session,
        turn_text: str,
        domain_summary: str,
        attachments_present: bool = False,
    ) -> ClassificationRequest:
        context_parts = []
        if domain_summary:
            context_parts.append(f"Domain: {domain_summary}")
        if session.summary:
            context_parts.append(f"Conversation so far: {session.summary}")

        return ClassificationRequest(
            prior_context_summary="\n\n".join(context_parts),
            current_turn_text=turn_text,
            attachments_present=attachments_present,
            recent_history=session.history[-RECENT_TURNS_FOR_CLASSIFICATION:],
        )

    async def classify(
        self,
        session: Session,
        turn_text: str,
        domain_summary: str,
        attachments_present: bool = False,
    ) -> ClassificationResult:
        """
        Classify one user turn.

        Raises:
            ClassificationError: If the classifier fails, times out, or
                returns a result that violates the ClassificationResult contract
        """
        request = self.build_request(session, turn_text, domain_summary, attachments_present)

        try:
            raw = await call_with_timeout(
                self.classifier.classify(request),
                timeout=self.config.collaborator_timeout_seconds,
                operation="classify",
            )
        except Exception as e:
            raise ClassificationError(
                f"Classifier call failed: {e}",
                details={"session_id": session.session_id, "error_type": type(e).__name__},
            ) from e

        result = self._validate(raw, session.session_id)

        self.logger.info(
            "turn_classified",
            session_id=session.session_id,
            in_domain=result.in_domain,
            retrieval_needed=result.retrieval_needed,
        )
        return result

    def _validate(self, raw: object, session_id: str) -> ClassificationResult:
        try:
            if isinstance(raw, ClassificationResult):
                # Re-run validators; the instance may have been built with model_construct
                return ClassificationResult.model_validate(raw.model_dump())
            if isinstance(raw, dict):
                return ClassificationResult.model_validate(raw)
        except ValidationError as e:
            raise ClassificationError(
                "Classifier returned a malformed result",
                details={"session_id": session_id, "errors": e.error_count()},
            ) from e

        raise ClassificationError(
            f"Classifier returned unsupported type {type(raw).__name__}",
            details={"session_id": session_id},
        )
