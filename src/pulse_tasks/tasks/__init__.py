"""
Task subsystem.

Components:
- tag_names.py: tag normalization/validation (pure)
- task_models.py: data structures (Task, Subtask, TaskStatus, ShardRecord, ...)
- shard_store.py: YAML-backed per-tag shard files
- task_store.py: domain manager (tasks, subtasks, tags)
- tag_list.py: tag ordering and listing helpers used by front ends
"""
