"""Drive one evidence submission to a trusted/untrusted verdict."""
from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

import structlog

from ..errors import ConfigurationError, EvidenceRefused, MalformedEvidence, VerifierError, VerifierUnreachable
from ..models import AttestationVerdict, Challenge, Evidence
from ..utils.media import media_type_in, normalize_media_type
from .policy import AppraisalPolicy
from .reference_values import ReferenceValues
from .verifier import VerificationRequest, Verifier

logger = structlog.get_logger(__name__)


class AttestationOrchestrator:
    """Binds evidence media types to appraisal policies and calls the verifier.

    ``policies`` maps each acceptable evidence media type to the policy that
    reduces the verifier's result for that type. The mapping order is the
    order advertised to clients in a challenge's ``accept`` list.
    """

    def __init__(
        self,
        verifier: Verifier,
        policies: Mapping[str, AppraisalPolicy],
        reference_values: Optional[ReferenceValues] = None,
    ) -> None:
        if not policies:
            raise ConfigurationError("at least one evidence type must be bound to a policy")
        self._verifier = verifier
        self._types: Tuple[str, ...] = tuple(policies)
        self._policies: Dict[str, AppraisalPolicy] = {
            normalize_media_type(media_type): policy for media_type, policy in policies.items()
        }
        self._reference_values = reference_values
        for media_type, policy in policies.items():
            if policy.needs_reference_values and reference_values is None:
                raise ConfigurationError(
                    f"policy {policy.name!r} for {media_type} requires reference values"
                )

    @property
    def accepted_types(self) -> Tuple[str, ...]:
        return self._types

    def check_evidence_type(self, challenge: Challenge, evidence: Evidence) -> None:
        """Reject evidence whose content type the challenge did not advertise."""
        if not media_type_in(evidence.content_type, challenge.accepted_types):
            raise MalformedEvidence(
                f"evidence type {evidence.content_type!r} not in {list(challenge.accepted_types)}"
            )

    def verify(self, challenge: Challenge, evidence: Evidence) -> AttestationVerdict:
        """Appraise ``evidence`` against ``challenge`` under the policy bound to its type.

        :class:`~keybroker.broker.KeyBroker` already checks the type before it
        consumes the challenge; the repeat check here covers callers that use
        the orchestrator on its own.
        """
        self.check_evidence_type(challenge, evidence)
        policy = self._policies.get(normalize_media_type(evidence.content_type))
        if policy is None:
            raise MalformedEvidence(f"no appraisal policy for {evidence.content_type!r}")
        request = VerificationRequest(
            nonce=challenge.nonce,
            evidence=evidence.data,
            media_type=evidence.content_type,
            policy=policy,
            reference_values=self._reference_values,
        )
        try:
            result = self._verifier.verify(request)
        except EvidenceRefused as exc:
            return AttestationVerdict(trusted=False, reason=f"verifier refused evidence: {exc}")
        except VerifierError as exc:
            logger.warning(
                "verifier.unreachable",
                challenge_id=challenge.id,
                timed_out=exc.timed_out,
                error=str(exc),
            )
            raise VerifierUnreachable(str(exc), timed_out=exc.timed_out) from exc
        return policy.appraise(result, self._reference_values)


__all__ = ["AttestationOrchestrator"]
