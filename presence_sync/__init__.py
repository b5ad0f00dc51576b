"""Presence Sync: Teams presence driven by calendar markers

Philosophy:
    A meeting tagged with the marker subject should silence the attendee's
    Teams client without them having to remember to do it. The engine is a
    single best-effort pass; an external scheduler re-runs it every few
    minutes and that re-run is the only retry.

Pass:
    1. Acquire an app-only Graph token (client credentials)
    2. Enumerate every user in the tenant
    3. Find each user's marker events starting within the lookahead window
    4. Normalize the event times into the event's own timezone
    5. Decide whether the event is close enough to act on
    6. Set DoNotDisturb / Presenting for the (capped) meeting length

Components:
    models.py: Data models (Principal, CandidateEvent, NormalizedEvent, ...)
    errors.py: Fault taxonomy and where each fault stops
    config_models.py: YAML + environment configuration
    oauth_manager.py: Client-credentials token acquisition
    graph/: Microsoft Graph client, directory, calendar and presence calls
    timezones.py: Timezone resolution and event normalization
    decision.py: Actionable window and override duration
    runner.py: The poll pass and its CLI
"""

from pathlib import Path


# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
ARGS_DIR = PROJECT_ROOT / "args"
CONFIG_PATH = ARGS_DIR / "presence_sync.yaml"

__all__ = [
    "PROJECT_ROOT",
    "ARGS_DIR",
    "CONFIG_PATH",
]
