"""
habitpulse - habit analytics and insight engine

Streaks, completion rates, behavioural insights and optimistic check-in
mutations for habit trackers.
"""

__version__ = "1.0.0"
