# ============================================================================
# STAGE WORKER MODULE
# ============================================================================
# STATUS: Core - Queue consumption for pipeline stages
# PURPOSE: Receive stage messages, apply retry policy, settle, scale
# ============================================================================
"""
Stage Worker Module

Queue plumbing shared by every pipeline stage (audit, vector,
notification). The stage handlers themselves live in ``services``; this
package only knows how to receive, retry and settle.

Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                  ConsumerPool (per stage)                 │
    │                                                           │
    │   worker 1 ─┐                                             │
    │   worker 2 ─┼─> StageListener ─> RetryMiddleware ─> handler
    │   worker N ─┘        │                  │                 │
    │                      ▼                  ▼                 │
    │           complete / dead-letter   scheduled retry copy   │
    │                 / abandon          (attempt_count + 1)    │
    └──────────────────────────────────────────────────────────┘
                 ▲
                 │ resize(n)
             Autoscaler

Components:
    - contracts.py:        RetryEnvelope, ProcessingOutcome, Settlement
    - retry_middleware.py: Failure classification -> settlement decision
    - listener.py:         Settles messages on the worker's receiver
    - pool.py:             Resizable set of worker coroutines
"""

from .contracts import ProcessingOutcome, RetryEnvelope, Settlement
from .retry_middleware import RetryMiddleware, MAX_ATTEMPTS_EXCEEDED
from .listener import StageListener
from .pool import ConsumerPool

__all__ = [
    "ProcessingOutcome",
    "RetryEnvelope",
    "Settlement",
    "RetryMiddleware",
    "MAX_ATTEMPTS_EXCEEDED",
    "StageListener",
    "ConsumerPool",
]
