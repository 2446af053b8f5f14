"""Write-time scrubbing of incognito execution records."""

from __future__ import annotations

import dataclasses
import logging
from typing import Optional

from .exceptions import RedactionError
from .models import ExecutionRecord

logger = logging.getLogger(__name__)

REDACTED = "*****"


def scrub_output(output: Optional[str]) -> Optional[str]:
    return None if output is None else REDACTED


def scrub(record: ExecutionRecord) -> ExecutionRecord:
    """Return the record as it may be persisted.

    Incognito records get every argument, every environment value and the
    captured output replaced by a fixed mask. Environment variable names are
    kept so the history still shows which variables were supplied. Any failure
    while masking is raised as ``RedactionError``; callers must not fall back
    to the unmasked record.
    """
    if not record.incognito:
        return record
    try:
        return dataclasses.replace(
            record,
            args=[REDACTED for _ in record.args],
            env={str(name): REDACTED for name in record.env},
            output=scrub_output(record.output),
        )
    except Exception as exc:
        logger.error("Failed to scrub incognito execution %s", record.id)
        raise RedactionError(f"could not scrub incognito execution {record.id}") from exc
