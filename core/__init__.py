"""
Core Pipeline Components.

Contains the building blocks of the moderation pipeline, separated from
broker, database and HTTP wiring.

Structure:
    models/: Pure data structures (no business logic)
    logic/: Business rules separated from models
    feedback_controller.py: PID controller
    autoscaler.py: Feedback-controlled pool sizing
    retry_policy.py: Backoff policy and retry middleware
    state_transitions.py: Transactional state transition + side effects
    errors.py / error_handler.py: Error classification and logging helpers
"""

from . import models
from . import logic

__all__ = [
    'models',
    'logic',
]
