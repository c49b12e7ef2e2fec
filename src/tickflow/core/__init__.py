"""Core building blocks: clocks, tasks, jobs, errors and logging."""
