"""Basic usage example for script-resume.

This example demonstrates:
1. Declaring stages with the session decorator
2. Passing values between stages through shared data
3. Resuming after a failure

Run it once with ``FAIL_REPORT=1`` set: the report stage fails and the
checkpoint names the second stage. Run it again without the variable and
choose to resume: the first two stages are skipped and the report prints
the value computed in the previous launch.
"""

import os

from script_resume import open_session

session = open_session()


@session.stage
def load(data):
    print("📥 Loading input")
    data["x"] = 5


@session.stage
def double(data):
    print("🔢 Doubling")
    data["y"] = data["x"] * 2


@session.stage
def report(data):
    if os.getenv("FAIL_REPORT"):
        raise RuntimeError("report destination unavailable")
    print(data["y"])


session.finalize()
