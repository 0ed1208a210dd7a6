"""cbt_exams signals"""
from django.dispatch import Signal

# Signal that is emitted when the status of an exam session changes.
# Sent with session_id, student_id, test_id, from_status and to_status.
exam_session_status_signal = Signal()

# Signal that is emitted once every answer of a session has a score.
exam_session_graded_signal = Signal()
