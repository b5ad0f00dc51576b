"""
Tool: Presence Sync Runner
Purpose: Run one poll pass over every user's calendar

A pass enumerates all users, finds their marker events starting within the
lookahead window, and sets DoNotDisturb / Presenting for each event that is
about to start. The pass does not loop; schedule it (cron, Task Scheduler)
every few minutes for continuous coverage.

Fault boundaries:
    - Missing credentials, token failure or directory failure abort the pass
      cleanly with {"success": False, "error": ...}
    - A failed event query skips that user; the pass continues
    - An unresolvable timezone skips that event
    - A rejected presence update is recorded; the pass continues

Usage:
    python -m presence_sync.runner --action run
    python -m presence_sync.runner --action run --dry-run --verbose
    python -m presence_sync.runner --action run --config args/presence_sync.yaml
    python -m presence_sync.runner --action check-config

Dependencies:
    - httpx
    - pyyaml, pydantic, python-dotenv (configuration)
    - tzlocal, tzdata (timezone resolution)
"""

import argparse
import json
import logging
import sys
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx

from presence_sync.config_models import PresenceSyncConfig, load_config
from presence_sync.decision import decide
from presence_sync.errors import (
    AuthError,
    ConfigError,
    DispatchError,
    TimeZoneResolutionError,
    TransportError,
)
from presence_sync.graph.calendar import find_marked_events
from presence_sync.graph.client import GraphClient
from presence_sync.graph.directory import list_principals
from presence_sync.graph.presence import apply_presence
from presence_sync.models import Principal
from presence_sync.oauth_manager import acquire_token
from presence_sync.timezones import normalize

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PassRunner:
    """One poll pass: enumerate, match, normalize, decide, dispatch."""

    def __init__(
        self,
        config: PresenceSyncConfig,
        client: GraphClient,
        session_id: str,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config
        self.client = client
        self.session_id = session_id
        self.clock = clock
        self.report: dict[str, Any] = {
            "success": True,
            "dry_run": config.dry_run,
            "principals": 0,
            "events_evaluated": 0,
            "deferred": 0,
            "dispatched": [],
            "skipped_events": [],
            "failed_principals": [],
            "failed_dispatches": [],
        }

    def _now(self) -> datetime:
        return self.clock() if self.clock else _utc_now()

    def run(self) -> dict[str, Any]:
        """
        Process every principal, strictly one at a time.

        Raises:
            TransportError: If the directory cannot be enumerated
        """
        principals = list_principals(self.client)
        self.report["principals"] = len(principals)

        for principal in principals:
            try:
                self._process_principal(principal)
            except TransportError as e:
                logger.warning(f"Skipping {principal}: {e}")
                self.report["failed_principals"].append({
                    "user_id": principal.id,
                    "fault": type(e).__name__,
                    "error": str(e),
                    "status_code": e.status_code,
                })
            except Exception as e:
                logger.exception(f"Unexpected fault for {principal}")
                self.report["failed_principals"].append({
                    "user_id": principal.id,
                    "fault": type(e).__name__,
                    "error": str(e),
                    "status_code": None,
                })

        return self.report

    def _process_principal(self, principal: Principal) -> None:
        events = find_marked_events(
            self.client,
            principal,
            self._now(),
            self.config.matching.marker,
            self.config.matching.lookahead_minutes,
        )

        for event in events:
            self.report["events_evaluated"] += 1

            # Evaluation clock, read after the fetch
            try:
                normalized = normalize(event, now=self.clock() if self.clock else None)
            except TimeZoneResolutionError as e:
                logger.warning(f"Skipping '{event.subject}' for {principal}: {e}")
                self.report["skipped_events"].append({
                    "user_id": principal.id,
                    "event_id": event.event_id,
                    "error": str(e),
                })
                continue

            action = decide(
                normalized,
                threshold_minutes=self.config.decision.threshold_minutes,
                max_minutes=self.config.decision.max_override_minutes,
            )
            if action is None:
                logger.debug(f"{principal}: deferring {json.dumps(normalized.to_dict())}")
                self.report["deferred"] += 1
                continue

            try:
                result = apply_presence(
                    self.client,
                    principal.id,
                    action.expiration_minutes,
                    session_id=self.session_id,
                    dry_run=self.config.dry_run,
                )
            except DispatchError as e:
                logger.warning(f"Presence update failed for {principal}: {e}")
                self.report["failed_dispatches"].append({
                    "user_id": principal.id,
                    "event_id": event.event_id,
                    "error": str(e),
                    "status_code": e.status_code,
                })
                continue

            self.report["dispatched"].append({
                "user_id": principal.id,
                "event_id": event.event_id,
                "subject": event.subject,
                "expiration_minutes": action.expiration_minutes,
                "correlation_id": result["command"]["correlation_id"],
                "event": normalized.to_dict(),
            })


def run_pass(
    config: PresenceSyncConfig,
    http_client: httpx.Client | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], datetime] | None = None,
) -> dict[str, Any]:
    """
    Run one complete pass.

    Args:
        config: Configuration for this pass only
        http_client: Optional client (tests inject a mocked transport)
        sleep: Inter-page delay function
        clock: Returns the current aware UTC instant; wall clock when omitted

    Returns:
        Pass report dict; success is False only when setup failed
    """
    started_at = _utc_now()

    try:
        app_id, tenant_id, app_secret = config.require_credentials()
    except ConfigError as e:
        logger.error(str(e))
        return {"success": False, "error": str(e), "fault": "ConfigError"}

    owns_client = http_client is None
    http = http_client or httpx.Client(timeout=config.graph.timeout_seconds)

    try:
        try:
            grant = acquire_token(
                app_id,
                tenant_id,
                app_secret,
                http_client=http,
                token_url=config.graph.token_url,
                scope=config.graph.scope,
            )
        except AuthError as e:
            logger.error(f"Aborting pass: {e}")
            return {"success": False, "error": str(e), "fault": "AuthError"}

        client = GraphClient(
            grant.access_token,
            base_url=config.graph.base_url,
            http_client=http,
            page_delay_seconds=config.graph.page_delay_seconds,
            sleep=sleep,
        )
        runner = PassRunner(config, client, session_id=app_id, clock=clock)

        try:
            report = runner.run()
        except TransportError as e:
            logger.error(f"Aborting pass: could not enumerate users: {e}")
            return {"success": False, "error": str(e), "fault": "TransportError"}
    finally:
        if owns_client:
            http.close()

    report["started_at"] = started_at.isoformat()
    report["finished_at"] = _utc_now().isoformat()
    logger.info(
        f"Pass complete: {report['principals']} principals, "
        f"{len(report['dispatched'])} dispatched, {report['deferred']} deferred, "
        f"{len(report['failed_principals'])} principal faults"
    )
    return report


def main():
    parser = argparse.ArgumentParser(description="Presence Sync Runner")
    parser.add_argument(
        "--action",
        required=True,
        choices=["run", "check-config"],
        help="Action to perform",
    )
    parser.add_argument("--config", help="Path to presence_sync.yaml")
    parser.add_argument("--dry-run", action="store_true", help="Decide but do not set presence")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    if args.dry_run:
        config.dry_run = True

    result = None

    if args.action == "run":
        result = run_pass(config)
        if result.get("success"):
            result["message"] = f"{len(result['dispatched'])} presence update(s) issued"

    elif args.action == "check-config":
        try:
            config.require_credentials()
            result = {"success": True, "message": "Configuration complete"}
        except ConfigError as e:
            result = {"success": False, "error": str(e)}
        safe = config.model_dump()
        safe["credentials"]["app_secret"] = "***" if config.credentials.app_secret else None
        result["config"] = safe

    # Output
    if result.get("success"):
        print(f"OK {result.get('message', 'Success')}")
    else:
        print(f"ERROR {result.get('error')}")
        sys.exit(1)

    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
