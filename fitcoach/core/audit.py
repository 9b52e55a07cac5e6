"""
Server-side provenance stamping.

Provenance columns are always overwritten with the verified caller id right
before a write, whatever the request body carried for them.
"""

import logging
from fitcoach.config.policies_config import POLICY_SET
from fitcoach.modules.auth.schemas import CallerIdentity
from typing import Any, Dict, Iterable, Mapping, Tuple

logger = logging.getLogger(__name__)

AUDIT_FIELDS: Dict[str, Tuple[str, ...]] = {
    table: policy.audit_columns
    for table, policy in POLICY_SET.tables.items()
    if policy.audit_columns
}


def enforce_audit_fields(
    payload: Mapping[str, Any],
    caller: CallerIdentity,
    fields: Iterable[str],
) -> Dict[str, Any]:
    """Return a copy of `payload` with every field in `fields` set to `caller.id`."""
    stamped = dict(payload)
    for name in fields:
        submitted = stamped.get(name)
        if submitted is not None and str(submitted) != caller.id:
            logger.warning(
                "Discarding client-supplied %s=%s from caller %s", name, submitted, caller.id
            )
        stamped[name] = caller.id
    return stamped


def stamp_for_table(table: str, payload: Mapping[str, Any], caller: CallerIdentity) -> Dict[str, Any]:
    return enforce_audit_fields(payload, caller, AUDIT_FIELDS.get(table, ()))
