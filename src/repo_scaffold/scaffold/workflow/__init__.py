"""Explicit provisioning workflow.

This package introduces first-class types for:
- Stage labels used to attribute failures
- Steps (a stage plus the action that runs in it)
- The provisioner that assembles the fixed step sequence

Control flow is a single ordered list of steps driven by `run_steps`.
"""

from repo_scaffold.scaffold.workflow.stages import Stage, StageTracker, Step, run_steps

__all__ = ["Stage", "StageTracker", "Step", "run_steps"]
