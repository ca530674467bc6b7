"""Taskflow: multi-user task management backend."""
