"""
Computer-based testing subsystem: exam scheduling, delivery, grading and session tokens.
"""

__version__ = '1.0.0'
