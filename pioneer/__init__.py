"""Pioneer study utilities.

Public API:
- PioneerUtils: per-study facade (branches, encrypted pings, lifecycle)
- StudyConfig: study name, telemetry env, branches, dev mode
- StudyEvent: event ids accepted by ``submit_event_ping``
- Branch, choose_weighted, hash_fraction, sha256: deterministic sampling
"""

from pioneer.core.config import StudyConfig
from pioneer.services.sampling import Branch, choose_weighted, hash_fraction, sha256
from pioneer.study import PioneerUtils, StudyEvent

__all__ = [
    "Branch",
    "PioneerUtils",
    "StudyConfig",
    "StudyEvent",
    "choose_weighted",
    "hash_fraction",
    "sha256",
]
