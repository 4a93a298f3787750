"""Per-form feedback totals and average sentiment."""
from typing import Dict, List, Tuple

from schemas import FeedbackRecord, Form, FormPerformanceEntry


def rank(records: List[FeedbackRecord], forms: List[Form]) -> List[FormPerformanceEntry]:
    """One entry per form, in the order the forms were given.

    Forms without feedback are still reported, with zero totals. The average
    only covers classified records and is 0 when there are none.
    """
    # form id -> (total, score sum, classified count)
    stats: Dict[str, Tuple[int, float, int]] = {}
    for record in records:
        total, score_sum, classified = stats.get(record.form_id, (0, 0.0, 0))
        if record.sentiment is not None:
            score_sum += record.sentiment.score
            classified += 1
        stats[record.form_id] = (total + 1, score_sum, classified)

    entries = []
    for form in forms:
        total, score_sum, classified = stats.get(form.id, (0, 0.0, 0))
        entries.append(FormPerformanceEntry(
            form_id=form.id,
            title=form.title,
            total_feedback=total,
            average_sentiment_score=score_sum / classified if classified else 0.0
        ))
    return entries
