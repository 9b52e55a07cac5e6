"""
Verify Isolation Script
Runs the cross-tenant isolation harness against a live Supabase project.
Exits non-zero on any breach or harness error; use as a deployment gate.
The harness accounts must be able to sign in, so either disable email
confirmation on the target project or confirm the rls-* accounts once.
"""

import argparse
import logging
import os
import sys

from fastapi import HTTPException

from fitcoach.database.supabase_client import SupabaseClient
from fitcoach.isolation.harness import HarnessError, IsolationBreach, IsolationHarness, verify_isolation_for_production
from fitcoach.modules.auth.service import IdentityService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Cross-tenant isolation check")
    parser.add_argument("--email-domain", default=os.environ.get("HARNESS_EMAIL_DOMAIN", "example.com"))
    parser.add_argument("--password", default=os.environ.get("HARNESS_PASSWORD", "Harness-Passw0rd!"))
    args = parser.parse_args(argv)

    harness = IsolationHarness(
        IdentityService(SupabaseClient.get_auth_client()),
        password=args.password,
        email_domain=args.email_domain,
    )
    try:
        report = verify_isolation_for_production(harness)
    except IsolationBreach as e:
        logger.critical(f"Isolation breach, do not deploy: {e}")
        return 1
    except HarnessError as e:
        logger.error(f"Harness could not complete: {e}")
        return 1
    except HTTPException as e:
        logger.error(f"Harness aborted with {e.status_code}: {e.detail}")
        return 1

    logger.info(f"All {len(report.results)} isolation checks passed (run {report.run_id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
