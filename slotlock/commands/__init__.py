"""Command bodies for the slotlock CLI. Each ``run_*`` returns an exit code."""
