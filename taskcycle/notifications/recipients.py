"""Recipient resolution for task notifications."""

import logging
from typing import Any, List, NamedTuple

from taskcycle.errors import MalformedRecipient
from taskcycle.models.task import Task

logger = logging.getLogger(__name__)


def parse_employee_id(value: Any) -> int:
    """Canonical employee id: a positive integer.

    Accepts ints and numeric strings. Booleans, floats with a fraction, empty values and
    non-numeric strings raise MalformedRecipient.
    """
    if isinstance(value, bool) or value is None:
        raise MalformedRecipient(value)
    if isinstance(value, int):
        emp_id = value
    elif isinstance(value, float) and value.is_integer():
        emp_id = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        emp_id = int(value.strip())
    else:
        raise MalformedRecipient(value)
    if emp_id <= 0:
        raise MalformedRecipient(value)
    return emp_id


class Recipients(NamedTuple):
    """Resolved recipients of a task and how many references were dropped."""
    emp_ids: List[int]
    skipped: int


def resolve_recipients(task: Task) -> Recipients:
    """Owner plus collaborators, de-duplicated, owner first.

    Malformed references are dropped and counted, never fatal.
    """
    refs: List[Any] = []
    if task.owner_id is not None and task.owner_id != "":
        refs.append(task.owner_id)
    refs.extend(task.collaborators or [])

    emp_ids: List[int] = []
    skipped = 0
    for ref in refs:
        try:
            emp_id = parse_employee_id(ref)
        except MalformedRecipient as e:
            skipped += 1
            logger.warning(f"Task {task.id}: dropping recipient ({e})")
            continue
        if emp_id not in emp_ids:
            emp_ids.append(emp_id)
    return Recipients(emp_ids=emp_ids, skipped=skipped)
