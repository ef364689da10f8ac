"""Worktree orchestration and speck root detection."""
