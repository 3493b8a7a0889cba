"""
Attendance summary statistics.

Always computed from the latest event per student so corrections and
repeated recognition hits are never double counted.
"""
import math
from typing import Dict, Iterable, Mapping, Optional

from .ledger import latest_per_student
from .models import AttendanceEvent, AttendanceMethod, AttendanceStatus


def percentage(part: int, total: int) -> int:
    """Whole percentage rounded half up; 0 when ``total`` is 0."""
    if total <= 0:
        return 0
    return int(math.floor(part * 100 / total + 0.5))


class ReportAggregator:
    """Summary counts for a lecture's current-status snapshot."""

    @staticmethod
    def summarize(current_status: Mapping[str, AttendanceEvent], total_enrolled: int,
                  enrolled_ids: Optional[Iterable[str]] = None) -> Dict[str, int]:
        """Counts over ``total_enrolled`` students.

        With ``enrolled_ids`` only those students are counted. Present never
        exceeds ``total_enrolled``, so absent is never negative.
        """
        if enrolled_ids is not None:
            enrolled = set(enrolled_ids)
            current_status = {sid: event for sid, event in current_status.items() if sid in enrolled}
        total_enrolled = max(total_enrolled, 0)
        present = sum(1 for event in current_status.values() if event.status == AttendanceStatus.PRESENT)
        present = min(present, total_enrolled)
        return {
            'present': present,
            'absent': total_enrolled - present,
            'total': total_enrolled,
            'percentage': percentage(present, total_enrolled)
        }

    @staticmethod
    def by_method(events: Iterable[AttendanceEvent]) -> Dict[str, int]:
        """Present students grouped by the method of their latest event."""
        counts = {method.value: 0 for method in AttendanceMethod}
        for event in latest_per_student(events).values():
            if event.status == AttendanceStatus.PRESENT:
                counts[event.method.value] += 1
        return counts

    def build_report(self, current_status: Mapping[str, AttendanceEvent], enrolled_ids: Iterable[str]) -> Dict:
        """Full report restricted to the students currently enrolled."""
        enrolled = set(enrolled_ids)
        snapshot = {sid: event for sid, event in current_status.items() if sid in enrolled}
        report = self.summarize(snapshot, len(enrolled), enrolled)
        report['by_method'] = self.by_method(snapshot.values())
        return report
