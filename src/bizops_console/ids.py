# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Human-readable identifiers for BizOps Console.

Besides the opaque document id assigned by the store, most records carry an
application id that people can read aloud and type:

    ACC-4042    accounts
    CL-117      clients (contracts: CON-305)
    EXP-5913    expenses
    E-34521     earnings
    Role-107    roles
    JOH-582     employees (first three letters of the name)
    WR-73       projects (initials of the project name)

Ids are built from a random numeric suffix. Uniqueness is obtained by a
bounded "generate, query, retry" loop (:func:`generate_unique_id`). The check
and the following write are two separate operations, so two concurrent
creations can still pick the same id; callers accept that risk.
"""

from __future__ import annotations

import logging
import random
import re
from collections.abc import Callable
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10


class IdGenerationError(RuntimeError):
    """Raised when no free id was found within the allowed attempts."""


def _digits(count: int, rng: Optional[random.Random]) -> str:
    source = rng or random
    return str(source.randrange(10 ** (count - 1), 10**count))


def account_id(rng: Optional[random.Random] = None) -> str:
    """Return an account id such as "ACC-4042"."""
    return f"ACC-{_digits(4, rng)}"


def client_id(rng: Optional[random.Random] = None) -> str:
    """Return a client id such as "CL-117"."""
    return f"CL-{_digits(3, rng)}"


def contract_id(rng: Optional[random.Random] = None) -> str:
    """Return a contract id such as "CON-305"."""
    return f"CON-{_digits(3, rng)}"


def expense_id(rng: Optional[random.Random] = None) -> str:
    """Return an expense id such as "EXP-5913"."""
    return f"EXP-{_digits(4, rng)}"


def earning_id(rng: Optional[random.Random] = None) -> str:
    """Return an earning id such as "E-34521"."""
    return f"E-{_digits(5, rng)}"


def role_id(rng: Optional[random.Random] = None) -> str:
    """Return a role id such as "Role-107"."""
    return f"Role-{_digits(3, rng)}"


def employee_id(name: str, rng: Optional[random.Random] = None) -> str:
    """
    Return an employee id made of the first three letters of the name.

    "John Smith" -> "JOH-582". Non-alphanumeric characters are ignored; a
    name without any usable character falls back to "EMP".
    """
    letters = re.sub(r"[^0-9A-Za-z]", "", name or "")[:3].upper() or "EMP"
    return f"{letters}-{_digits(3, rng)}"


def project_id(name: str, rng: Optional[random.Random] = None) -> str:
    """
    Return a project id made of the initials of the project name.

    "Website Redesign" -> "WR-73". The numeric part is not zero-padded.
    """
    initials = "".join(word[0] for word in (name or "").split() if word[0].isalnum())
    source = rng or random
    return f"{initials.upper() or 'P'}-{source.randint(0, 999)}"


def generate_unique_id(
    generate: Callable[[], str],
    exists: Callable[[str], bool],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> str:
    """
    Generate an id that `exists` reports as free.

    Parameters
    ----------
    generate:
        Zero-argument callable returning a candidate id.
    exists:
        Returns True if the candidate is already taken.
    max_attempts:
        Maximum number of candidates tried.

    Returns
    -------
    str
        The first free candidate.

    Raises
    ------
    IdGenerationError
        If every candidate was taken.
    ValueError
        If max_attempts is lower than 1.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1.")

    for attempt in range(1, max_attempts + 1):
        candidate = generate()
        if not exists(candidate):
            return candidate
        logger.debug(
            "Id %s already taken (attempt %d/%d)", candidate, attempt, max_attempts
        )

    logger.warning("No free id found after %d attempts", max_attempts)
    raise IdGenerationError(
        f"Failed to generate a unique id after {max_attempts} attempts."
    )
