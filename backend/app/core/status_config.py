"""Department and Job Status Configuration

Valid manufacturing departments and the default status given to jobs
ingested from a schedule upload.
"""
from enum import Enum
from typing import List


class Department(str, Enum):
    """Manufacturing departments that own machines and schedules"""
    MILLING = "milling"
    TURNING = "turning"
    SLIDING_HEAD = "sliding_head"
    MISC = "misc"


DEPARTMENT_LABELS = {
    Department.MILLING: "Milling",
    Department.TURNING: "Turning",
    Department.SLIDING_HEAD: "Sliding Heads",
    Department.MISC: "Misc",
}

DEFAULT_JOB_STATUS = "scheduled"


def get_departments() -> List[str]:
    """All department values, in declaration order"""
    return [d.value for d in Department]
