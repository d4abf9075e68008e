"""
Result Aggregator for combining per-challenge results into a session verdict
"""
from typing import Optional

from ..models.data_models import Session, SessionSummary


class ResultAggregator:
    """
    Combines challenge results into the summary consumed by selfie capture.

    A session passes only when the number of successful results equals the
    required count and no failed result is present.
    """

    def aggregate(self, session: Session, now_ms: Optional[int] = None) -> SessionSummary:
        """
        Summarize a session.

        Args:
            session: Session whose results should be combined
            now_ms: Current time in ms, used for the wall-clock duration

        Returns:
            SessionSummary: Overall decision plus counts and timings
        """
        results = session.results
        successes = [r for r in results if r.success]
        failures = [r for r in results if not r.success]

        overall_success = len(successes) == session.required_count and not failures

        if results:
            average_confidence = sum(r.confidence for r in results) / len(results)
        else:
            average_confidence = 0.0

        if now_ms is None:
            session_duration_ms = sum(r.elapsed_ms for r in results)
        else:
            session_duration_ms = max(now_ms - session.started_at, 0)

        return SessionSummary(
            session_id=session.session_id,
            overall_success=overall_success,
            average_confidence=average_confidence,
            total_elapsed_ms=sum(r.elapsed_ms for r in results),
            session_duration_ms=session_duration_ms,
            total_challenges=len(session.challenges),
            completed_challenges=len(successes),
            failed_challenges=len(failures),
            required_count=session.required_count,
            failure_reason=failures[0].failure_reason if failures else None,
        )
